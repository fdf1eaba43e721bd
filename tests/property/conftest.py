# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- File names (safe single path components)
- File content (binary payloads)
- Checksums (lowercase hex)
- Partition values (arbitrary text, including reserved characters)

Usage:
    from tests.property.conftest import file_names, binary_content

    @given(name=file_names, content=binary_content)
    def test_recycle_is_idempotent(name: str, content: bytes) -> None:
        ...
"""

# =============================================================================
# Hypothesis Settings
# =============================================================================
#
# For standardized @settings decorators, import from tests.property.settings:
#   from tests.property.settings import STANDARD_SETTINGS, DETERMINISM_SETTINGS
#
# Tiers: DETERMINISM (500), STANDARD (100), SLOW (50), QUICK (20)
# =============================================================================

from __future__ import annotations

import string

from hypothesis import strategies as st

# =============================================================================
# Path Strategies
# =============================================================================

_NAME_ALPHABET = string.ascii_letters + string.digits + "_-."

# A single path component that is never "." or ".."
file_names = st.text(alphabet=_NAME_ALPHABET, min_size=1, max_size=24).filter(lambda s: s not in (".", ".."))

# Relative directory chains, e.g. ["dt=1", "hr=00"]
directory_chains = st.lists(
    st.text(alphabet=string.ascii_lowercase + string.digits + "=", min_size=1, max_size=12),
    min_size=0,
    max_size=4,
)

# =============================================================================
# Content Strategies
# =============================================================================

binary_content = st.binary(min_size=0, max_size=4096)
nonempty_binary = st.binary(min_size=1, max_size=4096)
small_binary = st.binary(min_size=0, max_size=64)

# =============================================================================
# Checksum Strategies
# =============================================================================

hex_checksums = st.text(alphabet="0123456789abcdef", min_size=8, max_size=64)

# =============================================================================
# Partition Strategies
# =============================================================================

# Anything a user might put in a partition value, reserved characters included
partition_values = st.text(
    alphabet=st.characters(min_codepoint=1, max_codepoint=0x2FF, blacklist_categories=("Cs",)),
    min_size=1,
    max_size=30,
)
