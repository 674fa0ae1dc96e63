from moddupe.core.models import LengthUnit, MatchMode

MATCH_MODE_ALIASES = {
    "pattern": MatchMode.PATTERN,
    "patterns": MatchMode.PATTERN,
    "sample": MatchMode.SAMPLE,
    "samples": MatchMode.SAMPLE,
}

MATCH_MODE_CHOICES = list(MATCH_MODE_ALIASES.keys())

MATCH_MODE_HELP_TEXT = (
    "What to compare against the catalogue:\n"
    "  pattern : note data of every primary subsong (default)\n"
    "  sample  : every non-empty sample on its own (same as --samples)\n"
)

LENGTH_UNIT_ALIASES = {
    "bytes": LengthUnit.BYTES,
    "b": LengthUnit.BYTES,
    "frames": LengthUnit.FRAMES,
    "f": LengthUnit.FRAMES,
}

LENGTH_UNIT_CHOICES = list(LENGTH_UNIT_ALIASES.keys())

LENGTH_HELP_TEXT = (
    "Search the catalogue for samples of exactly this length.\n"
    "Combine with --sample-name, --include-ext etc. to narrow the result.\n"
    "Example: %(prog)s --search-length 8700 --sample-name '.*ahhvox.*'\n"
)

FILTER_PATHS_HELP_TEXT = (
    "Comma separated path fragments, matched anywhere in catalogue paths.\n"
    "Example: --exclude-paths /incoming,/pub/favourites\n"
)

EPILOG_TEXT = """
Examples:
  Build a catalogue from a local mirror
  %(prog)s --build-database ~/modland

  Match the current directory against the catalogue
  %(prog)s

  Match a directory, ignoring anything under /incoming in the catalogue
  %(prog)s --match-dir ~/new_mods --exclude-paths /incoming

  Only report groups where some catalogue copy is a .mod with a vocal sample
  %(prog)s --match-dir ~/new_mods --include-ext mod --sample-name 'vox|voice'

  Match sample by sample instead of by pattern data
  %(prog)s --match-dir ~/new_mods --samples

  Find catalogue samples that are exactly 8700 bytes long
  %(prog)s --search-length 8700 --length-unit bytes --sample-name ahhvox

  List modules that are duplicated inside the catalogue itself
  %(prog)s --list-duplicates --print-sample-names
"""
