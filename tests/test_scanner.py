"""
Unit tests for ModuleScannerImpl and ModuleFingerprinter.
Verifies traversal rules, failure accounting and record contents.
"""
import os
import pytest
from pathlib import Path
from moddupe.core.scanner import ModuleScannerImpl, ModuleFingerprinter
from moddupe.core.interfaces import DecodeError
from moddupe.core.hasher import PatternHasherImpl
from moddupe.core.decoder import ProTrackerDecoder
from conftest import build_mod, C1


def _names(records):
    return sorted(Path(r.path).name for r in records)


class TestModuleFingerprinter:
    def test_fingerprint_bytes(self):
        data = build_mod([{(0, 0): (C1, 0, 0)}], samples=[("ahhvox", b"\x01\x02" * 8)])

        record = ModuleFingerprinter(with_samples=True).fingerprint_bytes("/a.mod", data)

        assert record.path == "/a.mod"
        assert record.pattern_hash == PatternHasherImpl().compute(ProTrackerDecoder().decode(data))
        assert record.channels == 4
        assert record.subsongs == 1
        assert record.sample_names.startswith("ahhvox\n")
        assert record.file_hash is not None
        assert len(record.samples) == 1
        assert record.samples[0].index == 1
        assert record.pattern_dump == ()

    def test_samples_only_when_requested(self):
        data = build_mod([{}], samples=[("ahhvox", b"\x01\x02" * 8)])

        record = ModuleFingerprinter().fingerprint_bytes("/a.mod", data)

        assert record.samples == ()

    def test_dump_patterns(self):
        data = build_mod([{(0, 0): (C1, 0, 0)}])

        record = ModuleFingerprinter(dump_patterns=True).fingerprint_bytes("/a.mod", data)

        assert len(record.pattern_dump) == 64

    def test_fingerprint_bytes_raises_on_garbage(self):
        with pytest.raises(DecodeError):
            ModuleFingerprinter().fingerprint_bytes("/a.mod", b"garbage")

    def test_fingerprint_file_never_raises(self, temp_dir):
        bad = temp_dir / "bad.mod"
        bad.write_bytes(b"garbage")

        path, record, error = ModuleFingerprinter().fingerprint_file(str(bad))
        assert record is None
        assert "decode error" in error

        path, record, error = ModuleFingerprinter().fingerprint_file(str(temp_dir / "missing.mod"))
        assert record is None
        assert "read error" in error


class TestModuleScanner:
    """Directory traversal."""

    def test_recursive_scan(self, module_files, temp_dir):
        scanner = ModuleScannerImpl()

        records = list(scanner.scan(str(temp_dir)))

        assert _names(records) == ["song_a.mod", "song_a_copy.mod", "song_b.MOD", "song_c.mod"]

    def test_decode_failures_are_counted_not_raised(self, module_files, temp_dir):
        scanner = ModuleScannerImpl()

        list(scanner.scan(str(temp_dir)))

        assert scanner.stats.records == 4
        assert scanner.stats.decode_failures == 1
        assert scanner.stats.failed_paths == [str(module_files["readme"])]

    def test_listing_files_are_skipped(self, module_files, temp_dir):
        records = list(ModuleScannerImpl().scan(str(temp_dir)))

        assert "index.listing" not in _names(records)

    def test_non_recursive_scan(self, module_files, temp_dir):
        records = list(ModuleScannerImpl().scan(str(temp_dir), recursive=False))

        assert _names(records) == ["song_a.mod", "song_b.MOD", "song_c.mod"]

    def test_symlinks_are_skipped(self, module_files, temp_dir):
        link = temp_dir / "link.mod"
        try:
            os.symlink(module_files["song_a"], link)
        except (OSError, NotImplementedError):
            pytest.skip("Symlinks not supported")

        records = list(ModuleScannerImpl().scan(str(temp_dir)))

        assert "link.mod" not in _names(records)

    def test_missing_directory_raises(self, temp_dir):
        with pytest.raises(RuntimeError, match="does not exist"):
            ModuleScannerImpl().scan(str(temp_dir / "nope"))

    def test_file_as_root_raises(self, module_files):
        with pytest.raises(RuntimeError, match="Not a directory"):
            ModuleScannerImpl().scan(str(module_files["song_a"]))

    def test_stopped_flag_interrupts(self, module_files, temp_dir):
        records = list(ModuleScannerImpl().scan(str(temp_dir), stopped_flag=lambda: True))

        assert records == []

    def test_progress_callback(self, module_files, temp_dir):
        calls = []

        list(ModuleScannerImpl().scan(str(temp_dir), progress_callback=lambda *a: calls.append(a)))

        assert len(calls) == 5
        assert calls[-1] == ("Fingerprinting", 5, None)

    def test_worker_pool_gives_same_records(self, module_files, temp_dir):
        sequential = list(ModuleScannerImpl().scan(str(temp_dir)))
        parallel = list(ModuleScannerImpl(workers=2).scan(str(temp_dir)))

        assert sorted((r.path, r.pattern_hash) for r in sequential) == \
            sorted((r.path, r.pattern_hash) for r in parallel)

    def test_duplicates_share_pattern_hash(self, module_files, temp_dir):
        records = {Path(r.path).name: r for r in ModuleScannerImpl().scan(str(temp_dir))}

        assert records["song_a.mod"].pattern_hash == records["song_a_copy.mod"].pattern_hash
        assert records["song_a.mod"].pattern_hash == records["song_b.MOD"].pattern_hash
        assert records["song_a.mod"].pattern_hash != records["song_c.mod"].pattern_hash
        assert records["song_a.mod"].file_hash == records["song_a_copy.mod"].file_hash
        assert records["song_a.mod"].file_hash != records["song_b.MOD"].file_hash
