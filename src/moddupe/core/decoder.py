"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/decoder.py
Reference Decoder for ProTracker-style .mod files (31 samples, 4/6/8/NN channels).

Layout:
  0     title (20 bytes)
  20    31 sample headers x 30 bytes
  950   song length, restart position
  952   order list (128 bytes)
  1080  format tag ("M.K.", "8CHN", "12CH", ...)
  1084  patterns (64 rows x channels x 4 bytes), then sample data
"""

import struct
import logging
from functools import lru_cache
from typing import Dict, List, Tuple

from moddupe.core.models import DecodedModule, DecodedSample, Subsong, Pattern, Command
from moddupe.core.interfaces import Decoder, DecodeError

logger = logging.getLogger(__name__)

HEADER_SIZE = 1084
SAMPLE_HEADER = struct.Struct(">22sHBBHH")
NUM_SAMPLES = 31
ROWS_PER_PATTERN = 64
MAX_ORDERS = 128

FOUR_CHANNEL_TAGS = {b"M.K.", b"M!K!", b"M&K!", b"FLT4", b"4CHN", b"N.T."}
EIGHT_CHANNEL_TAGS = {b"8CHN", b"FLT8", b"OCTA", b"CD81", b"OKTA"}

# ProTracker periods, octaves 0 to 4 (C-0 = 1712, C-1 = 856)
PERIOD_TABLE = (
    1712, 1616, 1524, 1440, 1356, 1280, 1208, 1140, 1076, 1016, 960, 907,
    856, 808, 762, 720, 678, 640, 604, 570, 538, 508, 480, 453,
    428, 404, 381, 360, 339, 320, 302, 285, 269, 254, 240, 226,
    214, 202, 190, 180, 170, 160, 151, 143, 135, 127, 120, 113,
    107, 101, 95, 90, 85, 80, 76, 71, 67, 64, 60, 57,
)
# Period 1712 maps to note 25 (C-2 with C-0 = 1)
NOTE_OFFSET = 25


@lru_cache(maxsize=4096)
def period_to_note(period: int) -> int:
    """Closest note for an Amiga period, 0 for an empty cell."""
    if period == 0:
        return 0
    best = min(range(len(PERIOD_TABLE)), key=lambda i: abs(PERIOD_TABLE[i] - period))
    return best + NOTE_OFFSET


def _decode_name(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("latin-1").rstrip()


class ProTrackerDecoder(Decoder):
    """
    Parses ProTracker modules and their multichannel variants.
    Truncated sample data is clipped, truncated pattern data is an error.
    """

    def decode(self, data: bytes) -> DecodedModule:
        if len(data) < HEADER_SIZE:
            raise DecodeError(f"File too small for a module ({len(data)} bytes)")

        channels = self._channel_count(data[1080:1084])

        song_length = data[950]
        if song_length == 0 or song_length > MAX_ORDERS:
            raise DecodeError(f"Invalid song length: {song_length}")

        order_table = data[952:952 + MAX_ORDERS]
        num_patterns = max(order_table) + 1
        orders = tuple(order_table[:song_length])

        pattern_size = ROWS_PER_PATTERN * channels * 4
        patterns_end = HEADER_SIZE + num_patterns * pattern_size
        if len(data) < patterns_end:
            raise DecodeError(
                f"Pattern data truncated: need {patterns_end} bytes, got {len(data)}")

        patterns = {
            index: self._read_pattern(data, HEADER_SIZE + index * pattern_size, channels)
            for index in range(num_patterns)
        }
        samples = self._read_samples(data, patterns_end)

        return DecodedModule(
            format="mod",
            channels=channels,
            subsongs=(Subsong(orders=orders, start_order=0),),
            patterns=patterns,
            samples=samples,
            title=_decode_name(data[0:20]),
        )

    @staticmethod
    def _channel_count(tag: bytes) -> int:
        if tag in FOUR_CHANNEL_TAGS:
            return 4
        if tag in EIGHT_CHANNEL_TAGS:
            return 8
        if tag[1:4] == b"CHN" and tag[:1].isdigit():
            channels = int(tag[:1])
            if channels > 0:
                return channels
        if tag[2:4] in (b"CH", b"CN") and tag[:2].isdigit():
            channels = int(tag[:2])
            if channels > 0:
                return channels
        raise DecodeError(f"Unknown module tag: {tag!r}")

    @staticmethod
    def _read_pattern(data: bytes, offset: int, channels: int) -> Pattern:
        rows = []
        for row in range(ROWS_PER_PATTERN):
            cells = []
            for channel in range(channels):
                pos = offset + (row * channels + channel) * 4
                b0, b1, b2, b3 = data[pos:pos + 4]
                period = ((b0 & 0x0F) << 8) | b1
                cells.append(Command(note=period_to_note(period), effect=b2 & 0x0F, param=b3))
            rows.append(tuple(cells))
        return Pattern(rows=tuple(rows))

    @staticmethod
    def _read_samples(data: bytes, offset: int) -> Tuple[DecodedSample, ...]:
        samples: List[DecodedSample] = []
        for index in range(NUM_SAMPLES):
            header = 20 + index * SAMPLE_HEADER.size
            name, length_words, _finetune, _volume, _loop_start, _loop_length = \
                SAMPLE_HEADER.unpack_from(data, header)

            length = length_words * 2
            buffer = data[offset:offset + length]
            if len(buffer) < length:
                logger.debug(f"Sample {index + 1} truncated: {len(buffer)} of {length} bytes")
            offset += length

            samples.append(DecodedSample(
                name=_decode_name(name),
                data=buffer,
                length_frames=len(buffer),
                bits=8,
                channels=1,
                global_volume=64,
            ))
        return tuple(samples)


class DecoderRegistry(Decoder):
    """
    Tries a list of decoders in turn and returns the first successful result.
    """

    def __init__(self, decoders: List[Decoder] = None):
        self.decoders: List[Decoder] = decoders or [ProTrackerDecoder()]

    def decode(self, data: bytes) -> DecodedModule:
        errors: Dict[str, str] = {}
        for decoder in self.decoders:
            try:
                return decoder.decode(data)
            except DecodeError as e:
                errors[type(decoder).__name__] = str(e)
        raise DecodeError("; ".join(f"{name}: {msg}" for name, msg in errors.items()) or "No decoders")
