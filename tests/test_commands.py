"""
Integration tests for BuildCommand and MatchCommand, the orchestration layer between CLI and core.
Verifies scanner → catalogue → reporter wiring.
"""
import pytest
from pathlib import Path
from moddupe import BuildCommand, MatchCommand, MatchParams, MatchMode, FilterCriteria
from moddupe.core.catalogue import CatalogueStore


@pytest.fixture
def built_store(module_files, temp_dir, tmp_path):
    """Catalogue built from the module_files tree."""
    with CatalogueStore(str(tmp_path / "database.db")) as store:
        BuildCommand().execute(str(temp_dir), store)
        yield store


class TestBuildCommand:
    def test_execute_returns_written_rows_and_stats(self, module_files, temp_dir, tmp_path):
        with CatalogueStore(str(tmp_path / "database.db")) as store:
            written, stats = BuildCommand().execute(str(temp_dir), store)

            assert written == 4
            assert stats.records == 4
            assert stats.decode_failures == 1
            assert store.count() == 4

    def test_build_stores_samples(self, built_store):
        entries = built_store.find_samples_by_length(512)

        assert sorted(e.path for e in entries) == ["/copies/song_a_copy.mod", "/song_a.mod"]
        assert all(e.names == "ahhvox" for e in entries)

    def test_build_with_workers(self, module_files, temp_dir, tmp_path):
        with CatalogueStore(str(tmp_path / "database.db")) as store:
            written, _ = BuildCommand(workers=2).execute(str(temp_dir), store)

            assert written == 4

    def test_build_missing_directory_raises(self, tmp_path):
        with CatalogueStore(str(tmp_path / "database.db")) as store:
            with pytest.raises(RuntimeError):
                BuildCommand().execute(str(tmp_path / "nope"), store)


class TestMatchCommand:
    """Test command orchestration logic (scanner + catalogue + filters)."""

    def test_every_decoded_file_matches_its_own_catalogue(self, built_store, temp_dir):
        """
        Matching the directory a catalogue was built from must report every module.
        """
        groups, stats = MatchCommand().execute(MatchParams(root_dir=str(temp_dir)), built_store)

        assert len(groups) == stats.records == 4
        for group in groups:
            assert group.entry_count >= 1

    def test_pattern_duplicates_group_together(self, built_store, temp_dir):
        groups, _ = MatchCommand().execute(MatchParams(root_dir=str(temp_dir)), built_store)
        by_name = {Path(g.local.path).name: g for g in groups}

        assert sorted(e.path for e in by_name["song_a.mod"].entries) == \
            ["/copies/song_a_copy.mod", "/song_a.mod", "/song_b.MOD"]
        assert [e.path for e in by_name["song_c.mod"].entries] == ["/song_c.mod"]

    def test_filters_are_applied(self, built_store, temp_dir):
        params = MatchParams(
            root_dir=str(temp_dir),
            criteria=FilterCriteria(exclude_paths=("/copies",), filename_regex="song_b"),
        )

        groups, _ = MatchCommand().execute(params, built_store)

        assert sorted(Path(g.local.path).name for g in groups) == ["song_a.mod", "song_a_copy.mod", "song_b.MOD"]

    def test_sample_mode(self, built_store, temp_dir):
        params = MatchParams(root_dir=str(temp_dir), mode=MatchMode.SAMPLE)

        groups, _ = MatchCommand().execute(params, built_store)

        assert groups
        assert all(e.is_sample for g in groups for e in g.entries)

    def test_iter_matches_raises_eagerly_on_missing_directory(self, built_store, temp_dir):
        with pytest.raises(RuntimeError):
            MatchCommand().iter_matches(MatchParams(root_dir=str(temp_dir / "nope")), built_store)

    def test_stopped_flag_cancels_match(self, built_store, temp_dir):
        groups, _ = MatchCommand().execute(
            MatchParams(root_dir=str(temp_dir)),
            built_store,
            stopped_flag=lambda: True,
        )

        assert groups == []
