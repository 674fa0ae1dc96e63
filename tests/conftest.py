"""
Shared fixtures for moddupe tests.
Builds ProTracker modules byte by byte and in-memory DecodedModules with controlled notes.
"""
import pytest
import struct
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
import sys

# Add src/ to sys.path so 'moddupe' is importable without installation
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from moddupe.core.models import Command, DecodedModule, DecodedSample, Pattern, Subsong

# ProTracker periods used in tests
C1, D1, E1, F1, G1 = 856, 762, 678, 640, 570

Cell = Tuple[int, int, int]  # (period, effect, param)


def build_mod(
        patterns: Sequence[Dict[Tuple[int, int], Cell]] = ({},),
        orders: Sequence[int] = (0,),
        samples: Sequence[Tuple[str, bytes]] = (),
        channels: int = 4,
        tag: Optional[bytes] = None,
        title: str = "test module",
) -> bytes:
    """
    Returns the bytes of a 31-sample module.
    patterns: one dict per pattern mapping (row, channel) -> (period, effect, param)
    samples: (name, data) pairs, data length must be even
    """
    if tag is None:
        tag = b"M.K." if channels == 4 else f"{channels}CHN".encode()

    out = bytearray(title.encode("latin-1")[:20].ljust(20, b"\0"))
    for index in range(31):
        name, data = samples[index] if index < len(samples) else ("", b"")
        out += struct.pack(">22sHBBHH", name.encode("latin-1")[:22].ljust(22, b"\0"),
                           len(data) // 2, 0, 64, 0, 1)

    out.append(len(orders))
    out.append(127)
    out += bytes(orders).ljust(128, b"\0")
    out += tag

    for cells in patterns:
        pattern = bytearray(64 * channels * 4)
        for (row, channel), (period, effect, param) in cells.items():
            pos = (row * channels + channel) * 4
            pattern[pos] = (period >> 8) & 0x0F
            pattern[pos + 1] = period & 0xFF
            pattern[pos + 2] = effect & 0x0F
            pattern[pos + 3] = param & 0xFF
        out += pattern

    for _, data in samples:
        out += data
    return bytes(out)


def make_module(
        patterns: Dict[int, List[List[int]]],
        subsongs: Sequence[Tuple[Sequence[int], int]] = (((0,), 0),),
        channels: int = 2,
        effects: Optional[Dict[Tuple[int, int, int], Tuple[int, int]]] = None,
        samples: Sequence[DecodedSample] = (),
) -> DecodedModule:
    """
    In-memory module. patterns maps pattern id -> rows of notes (one int per channel).
    effects maps (pattern, row, channel) -> (effect, param).
    """
    effects = effects or {}
    built = {}
    for pid, rows in patterns.items():
        built[pid] = Pattern(rows=tuple(
            tuple(
                Command(note=note, effect=effects.get((pid, r, c), (0, 0))[0],
                        param=effects.get((pid, r, c), (0, 0))[1])
                for c, note in enumerate(row)
            )
            for r, row in enumerate(rows)
        ))
    return DecodedModule(
        format="test",
        channels=channels,
        subsongs=tuple(Subsong(orders=tuple(o), start_order=start) for o, start in subsongs),
        patterns=built,
        samples=tuple(samples),
    )


def fnv1a(notes: Sequence[int]) -> int:
    """Expected fingerprint for a note stream."""
    acc = 14695981039346656037
    for note in notes:
        acc ^= note & 0xFF
        acc = (acc * 1099511628211) & 0xFFFFFFFFFFFFFFFF
    return acc


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def module_files(temp_dir) -> Dict[str, Path]:
    """
    A small reference tree:
    - song_a.mod and copies/song_a_copy.mod: identical modules (one duplicate pair)
    - song_b.mod: same notes as song_a but different samples (pattern duplicate only)
    - song_c.mod: unique notes
    - readme.txt: not a module (decode failure)
    - index.listing: skipped by the scanner
    """
    files = {}
    melody = {(0, 0): (C1, 0, 0), (1, 1): (E1, 0, 0), (2, 2): (G1, 0, 0)}
    vox = ("ahhvox", bytes(range(128)) * 4)
    drum = ("kick drum", b"\x10\x20" * 100)

    files["song_a"] = temp_dir / "song_a.mod"
    files["song_a"].write_bytes(build_mod([melody], samples=[vox, drum]))

    copies = temp_dir / "copies"
    copies.mkdir()
    files["song_a_copy"] = copies / "song_a_copy.mod"
    files["song_a_copy"].write_bytes(build_mod([melody], samples=[vox, drum]))

    files["song_b"] = temp_dir / "song_b.MOD"
    files["song_b"].write_bytes(build_mod([melody], samples=[("lead", b"\x01\x02" * 50)], title="other"))

    files["song_c"] = temp_dir / "song_c.mod"
    files["song_c"].write_bytes(build_mod([{(0, 0): (D1, 0, 0), (4, 3): (F1, 0, 0)}], samples=[drum]))

    files["readme"] = temp_dir / "readme.txt"
    files["readme"].write_text("not a module")

    files["listing"] = temp_dir / "index.listing"
    files["listing"].write_bytes(build_mod([melody]))

    return files
