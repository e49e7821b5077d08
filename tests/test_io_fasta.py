"""Tests for FASTA indexing and record parsing."""

import json
import os
from pathlib import Path

import pytest

from genevet.exceptions import FormatError
from genevet.homology.hits import SequenceKind
from genevet.io.fasta import FastaIndex, RawSequenceIndex, parse_record

from conftest import HBA, HBB


# =============================================================================
# Test FastaIndex
# =============================================================================


class TestFastaIndex:
    """Tests for the byte-offset index."""

    def test_offsets_with_sentinel(self):
        """Offsets mark each record start and end with the content length."""
        content = b">a\nMKV\n>b desc\nMKVL\nAA\n"
        index = FastaIndex.build(content)
        assert index.offsets == (0, 7, len(content))
        assert len(index) == 2

    def test_span_is_record_bytes(self):
        """Consecutive offsets delimit exactly one record."""
        content = b">a\nMKV\n>b\nMKVL\n"
        index = FastaIndex.build(content)
        start, end = index.span(1)
        assert content[start:end] == b">b\nMKVL\n"

    def test_irregular_line_widths(self):
        """Records with uneven line lengths are still sliced exactly."""
        content = b">a\nMK\nVLAAG\nI\n>b\nMKVLAAGIVG\n"
        index = FastaIndex.build(content)
        spans = list(index.iter_spans())
        assert content[spans[0][0]:spans[0][1]] == b">a\nMK\nVLAAG\nI\n"

    def test_gt_inside_line_is_not_a_record(self):
        """Only a '>' at the start of a line starts a record."""
        content = b">a note>x\nMKV\n"
        index = FastaIndex.build(content)
        assert len(index) == 1

    def test_no_records_raises(self):
        """Content without a record marker is rejected."""
        with pytest.raises(FormatError):
            FastaIndex.build(b"MKVLAAG\n")

    def test_span_out_of_range(self):
        """Asking for a missing record raises IndexError."""
        index = FastaIndex.build(b">a\nMKV\n")
        with pytest.raises(IndexError):
            index.span(1)

    def test_from_file_and_read_record(self, protein_fasta: Path):
        """Records read back from disk match the file content."""
        index = FastaIndex.from_file(protein_fasta)
        assert len(index) == 3

        text = index.read_record(protein_fasta, 1)
        assert text.startswith(">gene2 truncated globin\n")
        assert HBA[:30] in text

    def test_from_file_missing(self, tmp_path: Path):
        """Missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            FastaIndex.from_file(tmp_path / "missing.fa")

    def test_index_is_immutable(self):
        """The index cannot be modified after it is built."""
        index = FastaIndex.build(b">a\nMKV\n")
        with pytest.raises(AttributeError):
            index.offsets = (0,)


# =============================================================================
# Test parse_record
# =============================================================================


class TestParseRecord:
    """Tests for building predictions from record text."""

    def test_protein_record(self):
        """Definition, identifier, residues and length are derived."""
        record = parse_record(">gene1 some protein\nMKVL\nAAG\n", SequenceKind.PROTEIN)
        assert record.identifier == "gene1"
        assert record.definition == "gene1 some protein"
        assert record.raw_sequence == "MKVLAAG"
        assert record.length_protein == 7
        assert record.kind == SequenceKind.PROTEIN

    def test_nucleotide_length_is_divided_by_three(self):
        """Nucleotide lengths are expressed in codons."""
        record = parse_record(">tx1\nATGGCC\nAAATT\n", SequenceKind.NUCLEOTIDE)
        assert record.raw_sequence == "ATGGCCAAATT"
        assert record.length_protein == 3

    def test_gaps_and_digits_are_not_residues(self):
        """Only letters count as residues."""
        record = parse_record(">x\nMK-V 12L*\n", SequenceKind.PROTEIN)
        assert record.raw_sequence == "MKVL"

    def test_missing_header_raises(self):
        """Text without a header line is rejected."""
        with pytest.raises(FormatError):
            parse_record("MKVL\n", SequenceKind.PROTEIN)

    def test_to_fasta_round_trip(self):
        """A parsed record renders back as FASTA."""
        record = parse_record(">gene1 desc\nMKVL\n", SequenceKind.PROTEIN)
        assert record.to_fasta() == ">gene1 desc\nMKVL\n"


# =============================================================================
# Test RawSequenceIndex
# =============================================================================


class TestRawSequenceIndex:
    """Tests for the raw-sequence identifier index."""

    def test_build_truncates_headers(self, raw_fasta: Path):
        """Header lines are rewritten to the bare identifier."""
        RawSequenceIndex.build(raw_fasta)
        headers = [line for line in raw_fasta.read_text().splitlines() if line.startswith(">")]
        assert headers == [">sp|P68872|HBB_PANTR", ">sp|P01942|HBA_MOUSE"]

    def test_build_persists_spans(self, raw_fasta: Path):
        """The index is written next to the raw file as JSON."""
        index = RawSequenceIndex.build(raw_fasta)
        assert index.index_path == raw_fasta.with_name("raw.fa.idx")

        data = json.loads(index.index_path.read_text())
        assert set(data) == {"sp|P68872|HBB_PANTR", "sp|P01942|HBA_MOUSE"}

    def test_fetch(self, raw_fasta: Path):
        """Records are fetched by identifier."""
        index = RawSequenceIndex.build(raw_fasta)
        text = index.fetch("sp|P01942|HBA_MOUSE")
        assert text == f">sp|P01942|HBA_MOUSE\n{HBA}\n"
        assert index.fetch("sp|UNKNOWN") is None

    def test_load_matches_build(self, raw_fasta: Path):
        """A loaded index equals the built one."""
        built = RawSequenceIndex.build(raw_fasta)
        loaded = RawSequenceIndex.load(raw_fasta)
        assert loaded.spans == built.spans
        assert "sp|P68872|HBB_PANTR" in loaded
        assert len(loaded) == 2
        assert HBB[60:] in loaded.fetch("sp|P68872|HBB_PANTR")

    def test_load_without_index(self, raw_fasta: Path):
        """Loading before building raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            RawSequenceIndex.load(raw_fasta)

    def test_is_current(self, raw_fasta: Path):
        assert not RawSequenceIndex(path=raw_fasta).is_current
        index = RawSequenceIndex.build(raw_fasta)
        assert index.is_current

    def test_modified_raw_file_is_not_current(self, raw_fasta: Path):
        index = RawSequenceIndex.build(raw_fasta)
        indexed_at = index.index_path.stat().st_mtime
        os.utime(raw_fasta, (indexed_at + 10, indexed_at + 10))
        assert not index.is_current
