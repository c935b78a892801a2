"""Tests for the psutil counter source, against the live host."""

import os
import platform

import psutil
import pytest

from hoststats.errors import CounterSourceError, FieldUnavailable, ProcessGone
from hoststats.models import CPUCounters
from hoststats.procfs import ProcfsSource
from hoststats.psutil_source import STATUS_LETTERS, PsutilSource, _translate_errors


class TestPsutilSource:
    """Tests for PsutilSource."""

    def test_cpu_times(self):
        times = PsutilSource().cpu_times()

        assert isinstance(times, CPUCounters)
        assert times.total > 0

    def test_cpu_times_monotonic(self):
        source = PsutilSource()

        first = source.cpu_times()
        second = source.cpu_times()

        assert second.total >= first.total

    def test_cpu_count_and_model(self):
        source = PsutilSource()

        assert source.cpu_count() >= 1
        assert isinstance(source.cpu_model(), str)

    @pytest.mark.skipif(
        not ProcfsSource().root.joinpath("cpuinfo").exists(), reason="requires /proc/cpuinfo"
    )
    def test_cpu_model_matches_cpuinfo(self):
        expected = ProcfsSource().cpu_model()
        if not expected:
            pytest.skip("no model name line in /proc/cpuinfo")

        assert PsutilSource().cpu_model() == expected

    def test_cpu_model_reads_cpuinfo_on_linux(self, monkeypatch):
        monkeypatch.setattr(psutil, "LINUX", True)
        monkeypatch.setattr(ProcfsSource, "cpu_model", lambda self: "Test Xeon")
        monkeypatch.setattr(platform, "processor", lambda: "x86_64")

        assert PsutilSource().cpu_model() == "Test Xeon"

    def test_cpu_model_falls_back_to_platform(self, monkeypatch):
        def unreadable(self):
            raise CounterSourceError("no cpuinfo")

        monkeypatch.setattr(psutil, "LINUX", True)
        monkeypatch.setattr(ProcfsSource, "cpu_model", unreadable)
        monkeypatch.setattr(platform, "processor", lambda: "arm")

        assert PsutilSource().cpu_model() == "arm"

    def test_cpu_model_off_linux_uses_platform(self, monkeypatch):
        monkeypatch.setattr(psutil, "LINUX", False)
        monkeypatch.setattr(platform, "processor", lambda: "i386")

        assert PsutilSource().cpu_model() == "i386"

    def test_virtual_memory(self):
        vm = PsutilSource().virtual_memory()

        assert vm.total > 0
        assert 0 <= vm.available <= vm.total

    def test_swap_memory(self):
        swap = PsutilSource().swap_memory()

        if swap is not None:
            assert swap.free <= swap.total

    def test_swap_memory_unavailable(self, monkeypatch):
        def broken():
            raise RuntimeError("no swap info")

        monkeypatch.setattr(psutil, "swap_memory", broken)

        assert PsutilSource().swap_memory() is None

    def test_pids_include_self(self):
        assert os.getpid() in PsutilSource().pids()

    def test_uptime(self):
        assert PsutilSource().uptime() > 0


class TestPsutilProcess:
    """Tests for per-process reads through psutil."""

    def test_own_process(self):
        proc = PsutilSource().process(os.getpid())

        assert proc.pid == os.getpid()
        assert isinstance(proc.name(), str)
        assert proc.state() in set(STATUS_LETTERS.values())
        assert proc.memory_rss() > 0
        assert proc.num_threads() >= 1
        assert proc.cpu_percent() >= 0.0

    def test_handles_are_cached(self):
        source = PsutilSource()

        source.process(os.getpid())
        source.process(os.getpid())

        assert list(source._procs) == [os.getpid()]

    def test_cache_pruned_on_listing(self):
        source = PsutilSource()
        source._procs[2**22 + 12345] = psutil.Process(os.getpid())

        source.pids()

        assert 2**22 + 12345 not in source._procs

    def test_missing_pid(self):
        with pytest.raises(ProcessGone):
            PsutilSource().process(2**22 + 12345)


class TestTranslateErrors:
    """Tests for psutil exception mapping."""

    def test_no_such_process(self):
        with pytest.raises(ProcessGone):
            with _translate_errors(5):
                raise psutil.NoSuchProcess(5)

    def test_zombie_is_field_unavailable(self):
        with pytest.raises(FieldUnavailable):
            with _translate_errors(5):
                raise psutil.ZombieProcess(5)

    def test_access_denied(self):
        with pytest.raises(FieldUnavailable):
            with _translate_errors(5):
                raise psutil.AccessDenied(5)
