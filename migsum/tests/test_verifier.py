"""Tests for :mod:`migsum.src.verifier`.

Covers the integrity guarantees:
  - unmodified directory verifies as consistent
  - single-file edits are reported on exactly that file
  - removed files are always history shrinkage
  - reordering / insertion is an order mismatch
  - new trailing files only need an update
"""

from __future__ import annotations

import itertools
import sys
from dataclasses import replace
from pathlib import Path

import pytest

_project_root = str(Path(__file__).resolve().parents[2])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from migsum.src.chain import fold_all
from migsum.src.directory import MigrationFile
from migsum.src.hasher import encode_digest, leaf_hash
from migsum.src.sumfile import CorruptSumFileError, SumEntry, SumFile, encode
from migsum.src.verifier import (
    FindingKind,
    IntegrityError,
    IntegrityStatus,
    verify,
)
from migsum.src.writer import generate


def _flip_byte(mf: MigrationFile, index: int) -> MigrationFile:
    content = bytearray(mf.content)
    content[index] ^= 0x01
    return replace(mf, content=bytes(content))


class TestConsistent:
    def test_fresh_sum_file_verifies(self, migration_files: list[MigrationFile]) -> None:
        print("\n[TEST] Unmodified directory against its own sum file")
        result = verify(migration_files, generate(migration_files))
        print(f"  Status: {result.status.value}")
        assert result.status == IntegrityStatus.CONSISTENT
        assert result.ok and not result.is_error
        assert result.findings == []

    @pytest.mark.parametrize("count", [0, 1, 2, 4])
    def test_any_size(self, migration_files: list[MigrationFile], count: int) -> None:
        subset = migration_files[:count]
        assert verify(subset, generate(subset)).ok

    def test_accepts_sum_file_text(self, migration_files: list[MigrationFile]) -> None:
        assert verify(migration_files, encode(generate(migration_files))).ok

    def test_prefix_digest_matches_chain(self, migration_files: list[MigrationFile]) -> None:
        sf = generate(migration_files)
        expected = fold_all((f.name, leaf_hash(f.content)) for f in migration_files)
        assert sf.entries[-1].digest == expected
        assert verify(migration_files, sf).prefix_digest == encode_digest(expected)


class TestContentTampering:
    @pytest.mark.parametrize("target", [0, 1, 2, 3])
    def test_single_byte_edit_reports_only_that_file(
        self, migration_files: list[MigrationFile], target: int
    ) -> None:
        print(f"\n[TEST] Flip one byte of file #{target}")
        recorded = generate(migration_files)
        live = list(migration_files)
        live[target] = _flip_byte(live[target], 3)

        result = verify(live, recorded)
        print(f"  Status: {result.status.value}  tampered: {result.tampered_files}")
        assert result.status == IntegrityStatus.CONTENT_TAMPERED
        assert result.tampered_files == [live[target].name]
        assert len(result.findings) == 1
        assert result.findings[0].position == target
        assert result.is_error

    def test_multiple_edits_each_reported(self, migration_files: list[MigrationFile]) -> None:
        recorded = generate(migration_files)
        live = [_flip_byte(f, 0) if i in (0, 2) else f for i, f in enumerate(migration_files)]
        result = verify(live, recorded)
        assert result.tampered_files == ["0001_init.sql", "0003_index.sql"]


class TestHistoryShrinkage:
    @pytest.mark.parametrize("removed", [0, 1, 2, 3])
    def test_deleting_any_file(self, migration_files: list[MigrationFile], removed: int) -> None:
        print(f"\n[TEST] Delete file #{removed}")
        recorded = generate(migration_files)
        live = [f for i, f in enumerate(migration_files) if i != removed]
        result = verify(live, recorded)
        print(f"  Status: {result.status.value}  missing: {result.missing_files}")
        assert result.status == IntegrityStatus.MISSING_FILES
        assert result.missing_files == [migration_files[removed].name]

    def test_empty_directory(self, migration_files: list[MigrationFile]) -> None:
        result = verify([], generate(migration_files))
        assert result.status == IntegrityStatus.MISSING_FILES
        assert len(result.missing_files) == len(migration_files)


class TestOrderMismatch:
    @pytest.mark.parametrize("first", [0, 1, 2])
    def test_adjacent_swap(self, migration_files: list[MigrationFile], first: int) -> None:
        print(f"\n[TEST] Swap files #{first} and #{first + 1}")
        recorded = generate(migration_files)
        live = list(migration_files)
        live[first], live[first + 1] = live[first + 1], live[first]

        def chain(files: list[MigrationFile]) -> bytes:
            return fold_all((f.name, leaf_hash(f.content)) for f in files)

        assert chain(live) != chain(migration_files)
        result = verify(live, recorded)
        print(f"  Status: {result.status.value}")
        assert result.status == IntegrityStatus.ORDER_MISMATCH
        finding = result.findings[0]
        assert finding.kind == FindingKind.ORDER_MISMATCH
        assert finding.position == first

    def test_file_inserted_into_history(self, migration_files: list[MigrationFile]) -> None:
        recorded = generate([migration_files[0], migration_files[2]])
        result = verify([migration_files[0], migration_files[1], migration_files[2]], recorded)
        assert result.status == IntegrityStatus.ORDER_MISMATCH
        assert result.unrecorded_files == []

    def test_renamed_file(self, migration_files: list[MigrationFile]) -> None:
        recorded = generate(migration_files)
        live = list(migration_files)
        live[3] = MigrationFile("0004_purchases.sql", live[3].content)
        result = verify(live, recorded)
        assert result.status == IntegrityStatus.MISSING_FILES
        kinds = {f.kind for f in result.findings}
        assert kinds == {FindingKind.MISSING_FILE, FindingKind.ORDER_MISMATCH}


class TestUnrecorded:
    def test_new_trailing_files_need_update(self, migration_files: list[MigrationFile]) -> None:
        print("\n[TEST] New migrations appended after the sum file was written")
        recorded = generate(migration_files[:2])
        result = verify(migration_files, recorded)
        print(f"  Status: {result.status.value}  new: {result.unrecorded_files}")
        assert result.status == IntegrityStatus.NEEDS_UPDATE
        assert result.unrecorded_files == ["0003_index.sql", "0004_orders.sql"]
        assert not result.is_error
        result.raise_for_status()
        with pytest.raises(IntegrityError):
            result.raise_for_status(allow_unrecorded=False)

    def test_tampering_outranks_needs_update(self, migration_files: list[MigrationFile]) -> None:
        recorded = generate(migration_files[:2])
        live = [_flip_byte(migration_files[0], 0)] + migration_files[1:]
        result = verify(live, recorded)
        assert result.status == IntegrityStatus.CONTENT_TAMPERED
        assert len(result.unrecorded_files) == 2


class TestForgedCheckpoint:
    def test_forged_checkpoint_without_matching_content(
        self, migration_files: list[MigrationFile]
    ) -> None:
        """A self-consistent sum file whose first checkpoint was not derived
        from the initial digest."""
        bogus = SumFile.empty().extend([SumEntry("0001_init.sql", leaf_hash(b"forged"))])
        result = verify(migration_files[:1], bogus)
        assert result.status == IntegrityStatus.CONTENT_TAMPERED
        assert result.tampered_files == ["0001_init.sql"]


class TestCorruptSumFile:
    def test_corrupt_text_raises(self, migration_files: list[MigrationFile]) -> None:
        text = encode(generate(migration_files))
        lines = text.splitlines()
        lines[1], lines[2] = lines[2], lines[1]
        with pytest.raises(CorruptSumFileError):
            verify(migration_files, "\n".join(lines) + "\n")


class TestResultSerialisation:
    def test_to_dict(self, migration_files: list[MigrationFile]) -> None:
        live = [_flip_byte(migration_files[0], 0)] + migration_files[1:]
        data = verify(live, generate(migration_files)).to_dict()
        assert data["status"] == "content_tampered"
        assert data["findings"][0]["kind"] == "content_tampered"
        assert data["findings"][0]["name"] == "0001_init.sql"
        assert data["recorded_count"] == data["live_count"] == 4


def test_all_orderings_of_generated_sum_verify(migration_files: list[MigrationFile]) -> None:
    """Every permutation, once renamed into version order, verifies against
    its own freshly generated sum file."""
    for perm in itertools.permutations(migration_files[:3]):
        files = [
            MigrationFile(f"{i:04d}_{f.name.split('_', 1)[1]}", f.content)
            for i, f in enumerate(perm, start=1)
        ]
        assert verify(files, generate(files)).ok


class TestInconsistentSumFileObject:
    def test_header_not_matching_entries_is_rejected(
        self, migration_files: list[MigrationFile]
    ) -> None:
        print("\n[TEST] SumFile object whose header was not derived from its entries")
        bad = SumFile(digest=leaf_hash(b"bogus"), entries=generate(migration_files).entries)
        with pytest.raises(CorruptSumFileError, match="refusing to verify"):
            verify(migration_files, bad)
        print("  ✓ CorruptSumFileError raised before any comparison")
