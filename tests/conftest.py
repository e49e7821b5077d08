"""Pytest configuration and shared fixtures for GeneVet tests.

Fixtures are organized by category:

- Sequence fixtures: synthetic predictions in FASTA files
- Search result fixtures: the same hits rendered as BLAST XML and as
  BLAST tabular output
- Object fixtures: in-memory predictions, hits and outcomes
"""

from pathlib import Path
from typing import Callable

import pytest

from genevet.homology.hits import HspRecord, SequenceKind, SequenceRecord
from genevet.validation.base import ValidationOutcome, ValidationState

# =============================================================================
# Reference Sequences
# =============================================================================

# Human hemoglobin beta and alpha chains
HBB = (
    "MVHLTPEEKSAVTALWGKVNVDEVGGEALGRLLVVYPWTQRFFESFGDLSTPDAVMGNPKV"
    "KAHGKKVLGAFSDGLAHLDNLKGTFATLSELHCDKLHVDPENFRLLGNVLVCVLAHHFGKE"
    "FTPPVQAAYQKVVAGVANALAHKYH"
)
HBA = (
    "MVLSPADKTNVKAAWGKVGAHAGEYGAEALERMFLSFPTTKTYFPHFDLSHGSAQVKGHGK"
    "KVADALTNAVAHVDDMPNALSALSDLHAHKLRVDPVNFKLLSHCLLVTLAAHLPAEFTPAV"
    "HASLDKFLASVSTVLTSKYR"
)

PROTEIN_PREDICTIONS = {
    "gene1": ("gene1 hemoglobin beta N-terminus", HBB[:60]),
    "gene2": ("gene2 truncated globin", HBA[:30]),
    "gene3": ("gene3 orphan", HBB[60:110]),
}

# 120 nt coding sequence (GFP start)
NUCLEOTIDE_SEQ = (
    "ATGGTGAGCAAGGGCGAGGAGCTGTTCACCGGGGTGGTGCCCATCCTGGTCGAGCTGGAC"
    "GGCGACGTAAACGGCCACAAGTTCAGCGTGTCCGGCGAGGGCGAGGGCGATGCCACCTAC"
)
# Translation of the coding sequence above
NUCLEOTIDE_PROTEIN = "MVSKGEELFTGVVPILVELDGDVNGHKFSVSGEGEGDATY"


def mutate(sequence: str, every: int) -> str:
    """Substitute every ``every``-th residue (starting at the first)."""
    residues = list(sequence)
    for i in range(0, len(residues), every):
        residues[i] = "A" if residues[i] != "A" else "G"
    return "".join(residues)


def make_hsp(
    query: str,
    query_from: int,
    query_to: int,
    mutate_every: int | None = 5,
    evalue: float = 1e-30,
    frame: int = 0,
    hit_from: int = 1,
) -> dict:
    """Describe one HSP aligning ``query[query_from-1:query_to]``."""
    qseq = query[query_from - 1 : query_to]
    hseq = mutate(qseq, mutate_every) if mutate_every else qseq
    identity = sum(1 for a, b in zip(qseq, hseq) if a == b)
    return {
        "evalue": evalue,
        "query_from": query_from,
        "query_to": query_to,
        "hit_from": hit_from,
        "hit_to": hit_from + len(hseq) - 1,
        "frame": frame,
        "identity": identity,
        "align_len": len(qseq),
        "qseq": qseq,
        "hseq": hseq,
    }


def make_hit(hit_id: str, description: str, accession: str, length: int, hsps: list[dict]) -> dict:
    return {
        "id": hit_id,
        "description": description,
        "accession": accession,
        "length": length,
        "hsps": hsps,
    }


def protein_hits() -> dict[str, list[dict]]:
    """Hits of PROTEIN_PREDICTIONS, keyed by query identifier.

    - gene1 (60 aa): one identical hit plus four hits of length 58-62
    - gene2 (30 aa): three hits of length 140-142
    - gene3: no hits
    """
    gene1 = PROTEIN_PREDICTIONS["gene1"][1]
    gene2 = PROTEIN_PREDICTIONS["gene2"][1]
    return {
        "gene1": [
            make_hit("tr|A0A0G1|GENE1_SELF", "Uncharacterized protein", "A0A0G1", 60,
                     [make_hsp(gene1, 1, 60, mutate_every=None, evalue=1e-45)]),
            make_hit("sp|P68872|HBB_PANTR", "Hemoglobin subunit beta", "P68872", 58,
                     [make_hsp(gene1, 1, 58, evalue=1e-38)]),
            make_hit("sp|P02112|HBB_CHICK", "Hemoglobin subunit beta", "P02112", 61,
                     [make_hsp(gene1, 2, 60, evalue=1e-30)]),
            make_hit("sp|P02088|HBB1_MOUSE", "Hemoglobin subunit beta-1", "P02088", 62,
                     [make_hsp(gene1, 1, 60, evalue=1e-35)]),
            make_hit("sp|P02062|HBB_HORSE", "Hemoglobin subunit beta", "P02062", 60,
                     [make_hsp(gene1, 1, 30, evalue=1e-12), make_hsp(gene1, 31, 60, evalue=1e-11, hit_from=31)]),
        ],
        "gene2": [
            make_hit("sp|P01942|HBA_MOUSE", "Hemoglobin subunit alpha", "P01942", 142,
                     [make_hsp(gene2, 1, 30, evalue=1e-14)]),
            make_hit("sp|P01946|HBA_RAT", "Hemoglobin subunit alpha-1/2", "P01946", 140,
                     [make_hsp(gene2, 1, 30, evalue=1e-13)]),
            make_hit("sp|P01966|HBA_BOVIN", "Hemoglobin subunit alpha", "P01966", 141,
                     [make_hsp(gene2, 1, 30, evalue=1e-13)]),
        ],
        "gene3": [],
    }


# =============================================================================
# Renderers
# =============================================================================


def write_fasta(path: Path, records: dict[str, tuple[str, str]], width: int = 60) -> Path:
    """Write ``{identifier: (definition, sequence)}`` as FASTA."""
    with open(path, "w") as f:
        for definition, sequence in records.values():
            f.write(f">{definition}\n")
            for i in range(0, len(sequence), width):
                f.write(sequence[i : i + width] + "\n")
    return path


def render_blast_xml(
    queries: list[tuple[str, str, int, list[dict]]],
    program: str = "blastp",
) -> str:
    """Render ``(identifier, definition, length, hits)`` queries as BLAST XML."""
    first_id, first_def, first_len, _ = queries[0]
    parts = [
        '<?xml version="1.0"?>',
        '<!DOCTYPE BlastOutput PUBLIC "-//NCBI//NCBI BlastOutput/EN" '
        '"http://www.ncbi.nlm.nih.gov/dtd/NCBI_BlastOutput.dtd">',
        "<BlastOutput>",
        f"  <BlastOutput_program>{program}</BlastOutput_program>",
        f"  <BlastOutput_version>{program.upper()} 2.14.0+</BlastOutput_version>",
        "  <BlastOutput_reference>Stephen F. Altschul, Thomas L. Madden, "
        "Alejandro A. Schaffer, Jinghui Zhang, Zheng Zhang, Webb Miller, and "
        "David J. Lipman (1997), Gapped BLAST and PSI-BLAST: a new generation of "
        "protein database search programs, Nucleic Acids Res. 25:3389-3402."
        "</BlastOutput_reference>",
        "  <BlastOutput_db>swissprot</BlastOutput_db>",
        "  <BlastOutput_query-ID>Query_1</BlastOutput_query-ID>",
        f"  <BlastOutput_query-def>{first_def}</BlastOutput_query-def>",
        f"  <BlastOutput_query-len>{first_len}</BlastOutput_query-len>",
        "  <BlastOutput_param>",
        "    <Parameters>",
        "      <Parameters_matrix>BLOSUM62</Parameters_matrix>",
        "      <Parameters_expect>1e-05</Parameters_expect>",
        "      <Parameters_gap-open>11</Parameters_gap-open>",
        "      <Parameters_gap-extend>1</Parameters_gap-extend>",
        "      <Parameters_filter>F</Parameters_filter>",
        "    </Parameters>",
        "  </BlastOutput_param>",
        "  <BlastOutput_iterations>",
    ]

    for n, (_, definition, length, hits) in enumerate(queries, start=1):
        parts += [
            "    <Iteration>",
            f"      <Iteration_iter-num>{n}</Iteration_iter-num>",
            f"      <Iteration_query-ID>Query_{n}</Iteration_query-ID>",
            f"      <Iteration_query-def>{definition}</Iteration_query-def>",
            f"      <Iteration_query-len>{length}</Iteration_query-len>",
            "      <Iteration_hits>",
        ]
        for h, hit in enumerate(hits, start=1):
            parts += [
                "        <Hit>",
                f"          <Hit_num>{h}</Hit_num>",
                f"          <Hit_id>{hit['id']}</Hit_id>",
                f"          <Hit_def>{hit['description']}</Hit_def>",
                f"          <Hit_accession>{hit['accession']}</Hit_accession>",
                f"          <Hit_len>{hit['length']}</Hit_len>",
                "          <Hit_hsps>",
            ]
            for k, hsp in enumerate(hit["hsps"], start=1):
                midline = "".join(a if a == b else " " for a, b in zip(hsp["qseq"], hsp["hseq"]))
                parts += [
                    "            <Hsp>",
                    f"              <Hsp_num>{k}</Hsp_num>",
                    f"              <Hsp_bit-score>{2.0 * hsp['identity']:.1f}</Hsp_bit-score>",
                    f"              <Hsp_score>{5 * hsp['identity']}</Hsp_score>",
                    f"              <Hsp_evalue>{hsp['evalue']:g}</Hsp_evalue>",
                    f"              <Hsp_query-from>{hsp['query_from']}</Hsp_query-from>",
                    f"              <Hsp_query-to>{hsp['query_to']}</Hsp_query-to>",
                    f"              <Hsp_hit-from>{hsp['hit_from']}</Hsp_hit-from>",
                    f"              <Hsp_hit-to>{hsp['hit_to']}</Hsp_hit-to>",
                    f"              <Hsp_query-frame>{hsp['frame']}</Hsp_query-frame>",
                    "              <Hsp_hit-frame>0</Hsp_hit-frame>",
                    f"              <Hsp_identity>{hsp['identity']}</Hsp_identity>",
                    f"              <Hsp_positive>{hsp['identity']}</Hsp_positive>",
                    "              <Hsp_gaps>0</Hsp_gaps>",
                    f"              <Hsp_align-len>{hsp['align_len']}</Hsp_align-len>",
                    f"              <Hsp_qseq>{hsp['qseq']}</Hsp_qseq>",
                    f"              <Hsp_hseq>{hsp['hseq']}</Hsp_hseq>",
                    f"              <Hsp_midline>{midline}</Hsp_midline>",
                    "            </Hsp>",
                ]
            parts += [
                "          </Hit_hsps>",
                "        </Hit>",
            ]
        parts += [
            "      </Iteration_hits>",
            "      <Iteration_stat>",
            "        <Statistics>",
            "          <Statistics_db-num>570830</Statistics_db-num>",
            "          <Statistics_db-len>205541630</Statistics_db-len>",
            "          <Statistics_hsp-len>0</Statistics_hsp-len>",
            "          <Statistics_eff-space>0</Statistics_eff-space>",
            "          <Statistics_kappa>0.041</Statistics_kappa>",
            "          <Statistics_lambda>0.267</Statistics_lambda>",
            "          <Statistics_entropy>0.14</Statistics_entropy>",
            "        </Statistics>",
            "      </Iteration_stat>",
        ]
        if not hits:
            parts.append("      <Iteration_message>No hits found</Iteration_message>")
        parts.append("    </Iteration>")

    parts += [
        "  </BlastOutput_iterations>",
        "</BlastOutput>",
        "",
    ]
    return "\n".join(parts)


def render_tabular(hits_by_query: dict[str, list[dict]]) -> str:
    """Render hits in the default 15-column tabular layout."""
    lines = []
    for query_id, hits in hits_by_query.items():
        for hit in hits:
            for hsp in hit["hsps"]:
                pident = 100 * hsp["identity"] / hsp["align_len"]
                lines.append("\t".join([
                    query_id,
                    hit["id"],
                    hit["accession"],
                    str(hit["length"]),
                    str(hsp["query_from"]),
                    str(hsp["query_to"]),
                    str(hsp["hit_from"]),
                    str(hsp["hit_to"]),
                    str(hsp["align_len"]),
                    str(hsp["frame"]),
                    f"{pident:.3f}",
                    str(hsp["identity"]),
                    f"{hsp['evalue']:.2e}",
                    hsp["qseq"],
                    hsp["hseq"],
                ]))
    return "\n".join(lines) + "\n"


# =============================================================================
# Sequence Fixtures
# =============================================================================


@pytest.fixture
def protein_fasta(tmp_path: Path) -> Path:
    """Three protein predictions (gene1, gene2, gene3)."""
    return write_fasta(tmp_path / "predictions.fa", PROTEIN_PREDICTIONS)


@pytest.fixture
def nucleotide_fasta(tmp_path: Path) -> Path:
    """One nucleotide prediction of 120 nt (40 codons)."""
    return write_fasta(tmp_path / "transcripts.fa", {"nt1": ("nt1 GFP fragment", NUCLEOTIDE_SEQ)})


@pytest.fixture
def raw_fasta(tmp_path: Path) -> Path:
    """Raw-sequence file with long descriptions."""
    path = tmp_path / "raw.fa"
    path.write_text(
        ">sp|P68872|HBB_PANTR Hemoglobin subunit beta OS=Pan troglodytes\n"
        f"{HBB[:60]}\n{HBB[60:]}\n"
        ">sp|P01942|HBA_MOUSE Hemoglobin subunit alpha OS=Mus musculus\n"
        f"{HBA}\n"
    )
    return path


# =============================================================================
# Search Result Fixtures
# =============================================================================


@pytest.fixture
def protein_queries() -> list[tuple[str, str, int, list[dict]]]:
    """Queries of PROTEIN_PREDICTIONS with their hits, in file order."""
    hits = protein_hits()
    return [
        (identifier, definition, len(sequence), hits[identifier])
        for identifier, (definition, sequence) in PROTEIN_PREDICTIONS.items()
    ]


@pytest.fixture
def blast_xml(tmp_path: Path, protein_queries) -> Path:
    """BLAST XML results for the protein predictions."""
    path = tmp_path / "results.xml"
    path.write_text(render_blast_xml(protein_queries))
    return path


@pytest.fixture
def blast_tabular(tmp_path: Path) -> Path:
    """BLAST tabular results (default layout) for the protein predictions."""
    path = tmp_path / "results.tsv"
    path.write_text(render_tabular(protein_hits()))
    return path


@pytest.fixture
def blastx_xml(tmp_path: Path) -> Path:
    """blastx XML results for the nucleotide prediction.

    Two hits; the second has an HSP in another reading frame.
    """
    protein = NUCLEOTIDE_PROTEIN
    hits = [
        make_hit("sp|P42212|GFP_AEQVI", "Green fluorescent protein", "P42212", 238, [
            {**make_hsp(protein, 1, 30, frame=1), "query_from": 1, "query_to": 90},
        ]),
        make_hit("sp|Q9U6Y8|RFP_DISSP", "Red fluorescent protein", "Q9U6Y8", 225, [
            {**make_hsp(protein, 1, 20, frame=1), "query_from": 1, "query_to": 60},
            {**make_hsp(protein, 21, 40, frame=2), "query_from": 59, "query_to": 118},
        ]),
    ]
    path = tmp_path / "blastx.xml"
    path.write_text(render_blast_xml(
        [("nt1", "nt1 GFP fragment", len(NUCLEOTIDE_SEQ), hits)],
        program="blastx",
    ))
    return path


@pytest.fixture
def write_results(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write arbitrary result text to a file under tmp_path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return _write


# =============================================================================
# Object Fixtures
# =============================================================================


@pytest.fixture
def prediction() -> SequenceRecord:
    """A 60 aa protein prediction."""
    return SequenceRecord(
        identifier="gene1",
        definition="gene1 hemoglobin beta N-terminus",
        kind=SequenceKind.PROTEIN,
        length_protein=60,
        raw_sequence=HBB[:60],
    )


def hit_of_length(identifier: str, length: int, *hsps: HspRecord) -> SequenceRecord:
    """A protein hit with the given length and HSPs."""
    return SequenceRecord(
        identifier=identifier,
        kind=SequenceKind.PROTEIN,
        length_protein=length,
        hsps=list(hsps),
    )


def outcome(alias: str, passed: bool | None) -> ValidationOutcome:
    """A success (True), warning (False) or unapplicable (None) outcome."""
    if passed is None:
        return ValidationOutcome(alias=alias, state=ValidationState.UNAPPLICABLE, result=None)
    return ValidationOutcome(
        alias=alias,
        state=ValidationState.SUCCESS if passed else ValidationState.WARNING,
        result=passed,
        expected=True,
    )
