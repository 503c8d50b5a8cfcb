from bisect import bisect_left, bisect_right
from datetime import datetime, timedelta
from pathlib import Path
import math
import random
import tempfile
import unittest

import numpy as np
import pandas as pd

from plotlog_reporter.core.concurrency import classify, overlap_counts, sort_by_end
from plotlog_reporter.core.grouping import GroupStats, RunningMean, group_by_concurrency, group_by_config
from plotlog_reporter.core.extractors import LOG_FORMAT_VERSION
from plotlog_reporter.core.metrics import PLOT_COLUMNS, human_time
from plotlog_reporter.core.model import ConfigKey, ParseFailure, PlotRecord, RecordDraft
from plotlog_reporter.core.pipeline import run_pipeline
from plotlog_reporter.core.reports import render_text, write_reports


def _t(hhmm, day=1):
    h, m = map(int, hhmm.split(":"))
    return datetime(2021, 5, day, h, m)


def _rec(start, end, k=32, buffer=4000, threads=4, stripe=2000, phases=(600.0, 300.0, 400.0, 100.0, 60.0)):
    return PlotRecord(
        k_size=k,
        buffer_MiB=buffer,
        threads=threads,
        stripe_size=stripe,
        phases_s=tuple(phases),
        total_s=(end - start).total_seconds(),
        start_time=start,
        end_time=end,
        tmp_dirs=("/tmp1", "/tmp2"),
        dest_path="/dst/plot.plot",
    )


def _brute_force(records):
    return [sum(1 for o in records if o.start_time <= r.end_time and r.start_time <= o.end_time)
            for r in records]


class OverlapTests(unittest.TestCase):
    def test_disjoint_and_overlapping(self):
        a = _rec(_t("10:00"), _t("10:30"))
        b = _rec(_t("10:15"), _t("10:45"))
        c = _rec(_t("10:50"), _t("11:00"))
        self.assertEqual([2, 2, 1], overlap_counts([a, b, c]))

    def test_touching_endpoints_overlap(self):
        a = _rec(_t("10:00"), _t("10:30"))
        b = _rec(_t("10:30"), _t("11:00"))
        self.assertEqual([2, 2], overlap_counts([a, b]))

    def test_long_run_started_early(self):
        # c starts before a and ends after b: start times are not sorted
        a = _rec(_t("09:00"), _t("10:00"))
        b = _rec(_t("10:30"), _t("11:00"))
        c = _rec(_t("08:00"), _t("11:30"))
        self.assertEqual([2, 2, 3], overlap_counts([a, b, c]))

    def test_nested_run_after_late_starter(self):
        a = _rec(_t("10:00"), _t("10:10"))
        b = _rec(_t("10:20"), _t("12:00"))
        c = _rec(_t("09:00"), _t("13:00"))
        self.assertEqual([2, 2, 3], overlap_counts([a, b, c]))

    def test_matches_brute_force_on_random_intervals(self):
        rng = random.Random(42)
        base = _t("00:00")
        records = []
        for _ in range(300):
            start = base + timedelta(minutes=rng.randint(0, 3000))
            records.append(_rec(start, start + timedelta(minutes=rng.randint(0, 600))))
        ordered = sort_by_end(records)
        self.assertEqual(_brute_force(ordered), overlap_counts(ordered))

    def test_unsorted_input_rejected(self):
        a = _rec(_t("10:00"), _t("10:30"))
        b = _rec(_t("10:15"), _t("10:45"))
        with self.assertRaises(ValueError):
            overlap_counts([b, a])

    def test_classify_sorts_by_end(self):
        a = _rec(_t("10:00"), _t("10:30"))
        b = _rec(_t("10:15"), _t("10:45"))
        c = _rec(_t("10:50"), _t("11:00"))
        classified = classify([c, b, a])
        self.assertEqual([a, b, c], [r for r, _ in classified])
        self.assertEqual([2, 2, 1], [n for _, n in classified])

    def test_alternating_starts_stay_linear(self):
        # starts alternate between t0 and just before the end, along the end order
        reads = {"end_time": 0}

        class _Interval:
            def __init__(self, start, end):
                self.start_time = start
                self._end = end

            @property
            def end_time(self):
                reads["end_time"] += 1
                return self._end

        t0 = _t("00:00")
        n = 4000
        intervals = []
        for i in range(n):
            end = t0 + timedelta(minutes=10 * (i + 1))
            start = t0 if i % 2 == 0 else end - timedelta(minutes=1)
            intervals.append(_Interval(start, end))

        counts = overlap_counts(intervals)

        ends = [iv._end for iv in intervals]
        starts = sorted(iv.start_time for iv in intervals)
        expected = [bisect_right(starts, iv._end) - bisect_left(ends, iv.start_time) for iv in intervals]
        self.assertEqual(expected, counts)
        self.assertLess(reads["end_time"], 10 * n)

    def test_empty(self):
        self.assertEqual([], overlap_counts([]))
        self.assertEqual([], classify([]))


class RunningMeanTests(unittest.TestCase):
    def _check(self, values):
        m = RunningMean()
        for v in values:
            m.add(v)
        naive = sum(values) / len(values)
        self.assertEqual(len(values), m.count)
        self.assertTrue(math.isclose(naive, m.mean, rel_tol=1e-9), f"{naive} vs {m.mean}")

    def test_lengths_one_two_and_long(self):
        rng = random.Random(3)
        self._check([1234.5])
        self._check([100.0, 250.0])
        self._check([rng.uniform(3000.0, 30000.0) for _ in range(10_000)])

    def test_matches_numpy(self):
        values = np.linspace(1.0, 5000.0, 777)
        m = RunningMean()
        for v in values:
            m.add(float(v))
        self.assertTrue(math.isclose(float(np.mean(values)), m.mean, rel_tol=1e-9))


class GroupingTests(unittest.TestCase):
    def test_config_groups(self):
        r1 = _rec(_t("10:00"), _t("11:00"), phases=(100.0, 200.0, 300.0, 400.0, 10.0))
        r2 = _rec(_t("10:30"), _t("12:00"), phases=(300.0, 400.0, 500.0, 600.0, 30.0))
        r3 = _rec(_t("13:00"), _t("14:00"), threads=8)
        groups = group_by_config([r1, r2, r3])

        self.assertEqual(2, len(groups))
        same = groups[ConfigKey(32, 4000, 4, 2000)]
        self.assertEqual(2, same.count)
        self.assertEqual(1, groups[ConfigKey(32, 4000, 8, 2000)].count)
        means = same.means()
        self.assertAlmostEqual(200.0, means["phase1_s"])
        self.assertAlmostEqual(500.0, means["phase4_s"])
        self.assertAlmostEqual(20.0, means["copy_s"])
        self.assertAlmostEqual(4500.0, means["total_s"])

    def test_concurrency_groups(self):
        a = _rec(_t("10:00"), _t("10:30"))
        b = _rec(_t("10:15"), _t("10:45"))
        c = _rec(_t("10:50"), _t("11:00"))
        groups = group_by_concurrency(classify([a, b, c]))
        self.assertEqual({1: 1, 2: 2}, {n: g.count for n, g in groups.items()})
        self.assertAlmostEqual(1800.0, groups[2].means()["total_s"])

    def test_negative_duration_fails_loudly(self):
        bad = _rec(_t("10:00"), _t("11:00"), phases=(100.0, -1.0, 1.0, 1.0, 1.0))
        stats = GroupStats()
        with self.assertRaises(ValueError):
            stats.add(bad)
        self.assertEqual(0, stats.count)


class ReportTests(unittest.TestCase):
    def _inputs(self):
        a = _rec(_t("10:00"), _t("15:27"))
        b = _rec(_t("12:00"), _t("09:00", day=2), threads=8)
        classified = classify([b, a])
        failures = [ParseFailure(Path("broken.txt"), "value", "value error at job 1: k_size: not an integer 'x'",
                                 RecordDraft(tmp_dirs=("/t1", "/t2")))]
        return classified, group_by_config(r for r, _ in classified), group_by_concurrency(classified), failures

    def test_human_time(self):
        self.assertEqual("5h 28m", human_time(19662.0))
        self.assertEqual("0h 1m", human_time(60.0))

    def test_text_report_sections(self):
        classified, cfg_groups, par_groups, failures = self._inputs()
        text = render_text(classified, cfg_groups, par_groups, failures)
        self.assertIn("May 1, 2021", text)
        self.assertIn("May 2, 2021", text)
        self.assertIn("Averages by configuration", text)
        self.assertIn("Averages by parallel plots", text)
        self.assertIn("Failed to parse the following plots", text)
        self.assertIn("broken.txt", text)
        self.assertTrue(text.startswith(f"Log format: {LOG_FORMAT_VERSION}\n"))

        quiet = render_text(classified, cfg_groups, par_groups, failures, show_failures=False)
        self.assertNotIn("broken.txt", quiet)

    def test_csv_reports(self):
        classified, cfg_groups, par_groups, failures = self._inputs()
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir)
            written = write_reports(classified, cfg_groups, par_groups, failures, out, fmt="csv")
            self.assertEqual({"plots.csv", "config_averages.csv", "parallel_averages.csv", "failures.csv"},
                             {p.name for p in written})
            df_fail = pd.read_csv(out / "failures.csv")
            self.assertEqual(["tmp_dirs"], df_fail["fields_obtained"].tolist())
            df_cfg = pd.read_csv(out / "config_averages.csv")
            self.assertEqual([4, 8], df_cfg["threads"].tolist())

    def test_mat_report(self):
        from scipy.io import loadmat
        classified, cfg_groups, par_groups, failures = self._inputs()
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir)
            written = write_reports(classified, cfg_groups, par_groups, failures, out, fmt="mat",
                                    mat_variable="summary")
            self.assertEqual([out / "report.mat"], written)
            mat = loadmat(out / "report.mat")
            self.assertIn("summary", mat)
            self.assertIn("log_format", mat["summary"].dtype.names)
            self.assertEqual(LOG_FORMAT_VERSION, str(mat["summary"]["log_format"][0, 0][0]))

    def test_csv_reports_without_finished_plots_keep_headers(self):
        failures = [ParseFailure(Path("broken.txt"), "value", "value error at job 1: k_size: not an integer 'x'")]
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir)
            write_reports([], {}, {}, failures, out, fmt="csv")
            plots = pd.read_csv(out / "plots.csv")
            self.assertEqual(PLOT_COLUMNS, plots.columns.tolist())
            self.assertTrue(plots.empty)
            self.assertTrue(pd.read_csv(out / "config_averages.csv").empty)

    def test_unknown_format_rejected(self):
        classified, cfg_groups, par_groups, failures = self._inputs()
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                write_reports(classified, cfg_groups, par_groups, failures, Path(tmpdir), fmt="html")


class PipelineTests(unittest.TestCase):
    def test_pipeline_text_report_and_plots(self):
        records = [
            _rec(_t("10:00"), _t("10:30")),
            _rec(_t("10:15"), _t("10:45")),
            _rec(_t("10:50"), _t("11:00"), k=33),
        ]
        cfg = {"reports": {"format": "text"}, "plots": {"enabled": True}}
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir)
            result = run_pipeline(records, [], cfg, out)

            self.assertEqual([2, 2, 1], [n for _, n in result.classified])
            self.assertEqual(2, len(result.config_groups))
            self.assertEqual({1, 2}, set(result.concurrency_groups))
            self.assertTrue((out / "report.txt").exists())
            self.assertTrue((out / "timeline.png").exists())
            self.assertTrue((out / "phases_by_config.png").exists())


if __name__ == "__main__":
    unittest.main()
