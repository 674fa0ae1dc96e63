"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/hasher.py
Fingerprinting of decoded modules.

PatternHasherImpl : 64-bit FNV-1a over the note stream of every primary subsong
SampleHasherImpl  : xxHash64 over sample buffers plus their length/format metadata
ContentHasherImpl : xxHash64 over raw file bytes (exact-copy detection only)
"""

import struct
import logging
from typing import List, Optional, Tuple

import xxhash

from moddupe.core.models import DecodedModule, DecodedSample, SampleRecord, Command
from moddupe.core.interfaces import PatternHasher, SampleHasher, ContentHasher

logger = logging.getLogger(__name__)

FNV_OFFSET_BASIS = 14695981039346656037
FNV_PRIME = 1099511628211
MASK_64 = 0xFFFFFFFFFFFFFFFF

# Returned as-is when a visited cell holds effect 1 with parameter 0xFF.
# Intent of this signature is unconfirmed; keep it as a separate branch.
SENTINEL_FINGERPRINT = 1
SENTINEL_EFFECT = 1
SENTINEL_PARAM = 0xFF

NOTE_NAMES = ("C-", "C#", "D-", "D#", "E-", "F-", "F#", "G-", "G#", "A-", "A#", "B-")


def format_note(note: int) -> str:
    """Renders a note value, 1 = C-0."""
    if note == 0:
        return "..."
    if note > 120:
        return f"{note:03d}"
    octave, semitone = divmod(note - 1, 12)
    return f"{NOTE_NAMES[semitone]}{octave}"


def format_command(cmd: Command) -> str:
    return f"{format_note(cmd.note)} {cmd.effect:02X}{cmd.param:02X}"


class PatternHasherImpl(PatternHasher):
    """
    Hashes the ordered note stream of a module.
    Only notes are hashed, so the result ignores samples, metadata and file bytes.
    """

    def compute(self, module: DecodedModule, dump: Optional[List[str]] = None) -> int:
        acc = FNV_OFFSET_BASIS
        num_channels = module.channels

        for subsong in module.subsongs:
            # Subsongs starting elsewhere are entry points into the same order list
            if subsong.start_order != 0:
                continue

            for order, pattern in enumerate(subsong.orders):
                for row in range(module.num_rows(pattern)):
                    cells = []
                    for channel in range(num_channels):
                        cmd = module.command(pattern, row, channel)

                        if cmd.effect == SENTINEL_EFFECT and cmd.param == SENTINEL_PARAM:
                            logger.debug(
                                f"Sentinel command at order {order}, pattern {pattern}, "
                                f"row {row}, channel {channel}")
                            return SENTINEL_FINGERPRINT

                        if cmd.note != 0:
                            acc ^= cmd.note & 0xFF
                            acc = (acc * FNV_PRIME) & MASK_64

                        if dump is not None:
                            cells.append(format_command(cmd))

                    if dump is not None:
                        dump.append(f"{order:03d} {pattern:03d} {row:02d} | " + " | ".join(cells))

        return acc


class SampleHasherImpl(SampleHasher):
    """
    Hashes every sample independently of the pattern data.
    Length, bit depth, channel mode and global volume are mixed in with the raw buffer.
    """
    HEADER = struct.Struct("<QQBBB")

    def compute(self, sample: DecodedSample) -> int:
        h = xxhash.xxh64()
        h.update(self.HEADER.pack(
            sample.length_frames,
            sample.length_bytes,
            sample.bits,
            sample.channels,
            sample.global_volume & 0xFF,
        ))
        h.update(sample.data)
        return h.intdigest()

    def records(self, path: str, module: DecodedModule) -> Tuple[SampleRecord, ...]:
        """Sample records for every non-empty sample, indexed from 1."""
        result = []
        for index, sample in enumerate(module.samples, 1):
            if sample.length_bytes == 0:
                continue
            result.append(SampleRecord(
                module_path=path,
                index=index,
                name=sample.name,
                length_frames=sample.length_frames,
                length_bytes=sample.length_bytes,
                bits=sample.bits,
                channels=sample.channels,
                fingerprint=self.compute(sample),
            ))
        return tuple(result)

    @staticmethod
    def matches_frame_length(record: SampleRecord, length: int) -> bool:
        return record.length_frames == length

    @staticmethod
    def matches_byte_length(record: SampleRecord, length: int) -> bool:
        return record.length_bytes == length


class ContentHasherImpl(ContentHasher):
    @staticmethod
    def compute(data: bytes) -> str:
        return xxhash.xxh64(data).hexdigest()
