"""
Property-based tests for fingerprinting and reconciliation using Hypothesis.

Tests invariants that should hold for all inputs:
- Fingerprint determinism and projection-order independence
- Digest length per algorithm
- Outcome counts always add up to the index union
- Identical sides always reconcile to a full match
"""

import random
import re

from hypothesis import given, settings, strategies as st

from reconciliation.fingerprint import RowFingerprint, RowFingerprinter
from reconciliation.row_level import ReconciliationEngine

column_names = st.text(
    alphabet=st.characters(whitelist_categories=('Lu', 'Ll'), min_codepoint=65, max_codepoint=122),
    min_size=1,
    max_size=12,
)

column_values = st.one_of(
    st.none(),
    st.integers(),
    st.text(max_size=20),
    st.binary(max_size=16),
    st.booleans(),
)

rows = st.dictionaries(column_names, column_values, max_size=8)

hashes = st.sampled_from(["a" * 64, "b" * 64, "c" * 64])


# Property: the same row always hashes the same, whatever the projection order
@given(row=rows, seed=st.integers(min_value=0, max_value=1000))
def test_fingerprint_ignores_projection_order(row, seed):
    """Permuting the columns of a row never changes its fingerprint."""
    fingerprinter = RowFingerprinter()
    items = list(row.items())
    random.Random(seed).shuffle(items)

    assert fingerprinter.fingerprint(row) == fingerprinter.fingerprint(dict(items))


@given(row=rows, algorithm=st.sampled_from(["MD5", "SHA256"]))
def test_fingerprint_is_lowercase_hex_of_fixed_length(row, algorithm):
    """Digests are lowercase hex, 32 characters for MD5 and 64 for SHA256."""
    digest = RowFingerprinter(algorithm).fingerprint(row)

    assert len(digest) == (32 if algorithm == "MD5" else 64)
    assert re.fullmatch(r"[0-9a-f]+", digest)


@given(row=rows)
def test_fingerprint_is_deterministic_across_instances(row):
    """Two fingerprinters with the same algorithm agree on every row."""
    assert RowFingerprinter().fingerprint(row) == RowFingerprinter().fingerprint(dict(row))


def _fingerprint_map(indexed_hashes):
    return {
        index: RowFingerprint(index=index, hash=h)
        for index, h in indexed_hashes
    }


# Property: outcome counts partition the union of indices
@given(
    source_hashes=st.lists(hashes, max_size=30),
    target_hashes=st.lists(hashes, max_size=30),
)
@settings(max_examples=200)
def test_outcome_counts_partition_index_union(source_hashes, target_hashes):
    """Every index on either side is classified exactly once."""
    source = _fingerprint_map(enumerate(source_hashes, start=1))
    target = _fingerprint_map(enumerate(target_hashes, start=1))

    result = ReconciliationEngine().reconcile("s.t", "t.t", source, target)

    assert result.matching_rows + result.mismatched_rows + result.missing_in_target == len(source)
    assert result.matching_rows + result.mismatched_rows + result.extra_in_target == len(target)
    assert result.missing_in_target == max(0, len(source) - len(target))
    assert result.extra_in_target == max(0, len(target) - len(source))


@given(source_hashes=st.lists(hashes, min_size=1, max_size=30))
def test_identical_sides_always_match(source_hashes):
    """A side reconciled against itself is a full match."""
    source = _fingerprint_map(enumerate(source_hashes, start=1))

    result = ReconciliationEngine().reconcile("s.t", "t.t", source, dict(source))

    assert result.is_match
    assert result.match_percentage == 100.0


@given(
    source_hashes=st.lists(hashes, max_size=30),
    target_hashes=st.lists(hashes, max_size=30),
    limit=st.integers(min_value=0, max_value=5),
)
def test_evidence_never_exceeds_limit(source_hashes, target_hashes, limit):
    """Evidence lists are capped while counts keep the full totals."""
    source = _fingerprint_map(enumerate(source_hashes, start=1))
    target = _fingerprint_map(enumerate(target_hashes, start=1))

    result = ReconciliationEngine(evidence_limit=limit).reconcile("s.t", "t.t", source, target)

    assert len(result.mismatches) == min(limit, result.mismatched_rows)
    assert len(result.missing) == min(limit, result.missing_in_target)
    assert len(result.extra) == min(limit, result.extra_in_target)
