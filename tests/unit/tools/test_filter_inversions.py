"""Tests for the PASS inversion filter."""

from minionpipe.tools.filter_inversions import filter_inversions, is_pass_inversion, main

HEADER = "##fileformat=VCFv4.2\n#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\n"


def _record(pos, filter_value, info):
    return f"chr1\t{pos}\tsv{pos}\tN\t<SV>\t60\t{filter_value}\t{info}\n"


class TestFilterInversions:
    """Test selection of records that are both inversions and PASS."""

    def test_is_pass_inversion(self):
        """Both conditions must hold."""
        base = ["chr1", "1", ".", "N", "<INV>", "60"]
        assert is_pass_inversion(base + ["PASS", "PRECISE;SVTYPE=INV;SVLEN=5"])
        assert not is_pass_inversion(base + ["GT", "SVTYPE=INV"])
        assert not is_pass_inversion(base + ["PASS", "SVTYPE=DEL"])
        assert not is_pass_inversion(base + ["PASS", "SVTYPE=INVDUP"])
        assert not is_pass_inversion(base + ["PASS", "."])

    def test_keeps_header_and_pass_inversions(self, tmp_path):
        """Headers are copied and only PASS inversions survive."""
        src = tmp_path / "sv.vcf"
        src.write_text(
            HEADER
            + _record(100, "PASS", "SVTYPE=INV")
            + _record(200, "GT", "SVTYPE=INV")
            + _record(300, "PASS", "SVTYPE=DEL")
            + _record(400, "PASS", "PRECISE;SVTYPE=INV")
        )
        dst = tmp_path / "inv.vcf"

        kept, total = filter_inversions(str(src), str(dst))

        assert (kept, total) == (2, 4)
        lines = dst.read_text().splitlines()
        assert lines[:2] == HEADER.splitlines()
        assert [line.split("\t")[1] for line in lines[2:]] == ["100", "400"]

    def test_main_missing_input(self, tmp_path):
        """A missing input makes the tool exit non-zero."""
        assert main(["-o", str(tmp_path / "out.vcf"), str(tmp_path / "nope.vcf")]) == 1
