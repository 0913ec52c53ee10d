"""Executable stand-ins for the external bioinformatics tools.

Each stub is a small Python script that accepts the same arguments the stage
catalog passes and writes minimal but well-formed outputs at the paths the real
tool would use.
"""

import stat
import sys
import textwrap
from pathlib import Path
from typing import Dict, Iterable, Optional

_SAMTOOLS = """
import shutil
import sys
from pathlib import Path

args = sys.argv[1:]
command = args[0]
if command == "faidx":
    ref = Path(args[-1])
    Path(str(ref) + ".fai").write_text("chr1\\t5000\\t6\\t60\\t61\\n")
elif command == "sort":
    out = Path(args[args.index("-o") + 1])
    src = Path(args[-1])
    if not src.is_file() or src.stat().st_size == 0:
        sys.stderr.write("samtools sort: truncated file\\n")
        sys.exit(1)
    shutil.copyfile(src, out)
elif command == "index":
    bam = Path(args[-1])
    Path(str(bam) + ".bai").write_bytes(b"BAI\\x01")
else:
    sys.stderr.write("samtools: unknown command " + command + "\\n")
    sys.exit(1)
"""

_MINIMAP2 = """
import sys

args = sys.argv[1:]
reads = args[-1]
sys.stdout.write("@HD\\tVN:1.6\\tSO:unsorted\\n@SQ\\tSN:chr1\\tLN:5000\\n")
with open(reads) as handle:
    lines = handle.read().splitlines()
for i in range(0, len(lines) - 3, 4):
    name = lines[i][1:].split()[0]
    seq = lines[i + 1]
    qual = lines[i + 3]
    cigar = str(len(seq)) + "M"
    sys.stdout.write("\\t".join([name, "0", "chr1", "1", "60", cigar, "*", "0", "0", seq, qual]) + "\\n")
"""

_MOSDEPTH = """
import gzip
import sys

args = sys.argv[1:]
prefix = args[-2]
with gzip.open(prefix + ".regions.bed.gz", "wt") as handle:
    handle.write("chr1\\t0\\t500\\t1.00\\n")
with open(prefix + ".mosdepth.summary.txt", "w") as handle:
    handle.write("chrom\\tlength\\tbases\\tmean\\tmin\\tmax\\n")
    handle.write("chr1\\t5000\\t1500\\t0.30\\t0\\t1\\n")
"""

_CLAIR3 = """
import gzip
import os
import sys

output = None
for arg in sys.argv[1:]:
    if arg.startswith("--output="):
        output = arg.split("=", 1)[1]
if output is None:
    sys.stderr.write("clair3: --output is required\\n")
    sys.exit(2)
os.makedirs(output, exist_ok=True)
with gzip.open(os.path.join(output, "merge_output.vcf.gz"), "wt") as handle:
    handle.write("##fileformat=VCFv4.2\\n")
    handle.write("#CHROM\\tPOS\\tID\\tREF\\tALT\\tQUAL\\tFILTER\\tINFO\\tFORMAT\\tSAMPLE\\n")
    for pos, qual in ((100, "5"), (200, "20"), (300, "21"), (400, "100")):
        handle.write("\\t".join(["chr1", str(pos), ".", "A", "G", qual, "PASS", "P", "GT", "0/1"]) + "\\n")
"""

_SNIFFLES = """
import sys

args = sys.argv[1:]
vcf = args[args.index("--vcf") + 1]
records = [
    ("100", "INV", "PASS"),
    ("200", "INV", "GT"),
    ("300", "DEL", "PASS"),
    ("400", "DEL", "GT"),
]
with open(vcf, "w") as handle:
    handle.write("##fileformat=VCFv4.2\\n")
    handle.write("#CHROM\\tPOS\\tID\\tREF\\tALT\\tQUAL\\tFILTER\\tINFO\\n")
    for pos, svtype, status in records:
        info = "PRECISE;SVTYPE=" + svtype + ";SVLEN=500"
        handle.write("\\t".join(["chr1", pos, "sv" + pos, "N", "<" + svtype + ">", "60", status, info]) + "\\n")
"""

_FAILING = """
import sys

sys.stderr.write("stub tool failure\\n")
sys.exit(3)
"""

STUB_SOURCES = {
    "samtools": _SAMTOOLS,
    "minimap2": _MINIMAP2,
    "mosdepth": _MOSDEPTH,
    "clair3": _CLAIR3,
    "sniffles": _SNIFFLES,
}


def install_stub_tools(bin_dir: Path, failing: Optional[Iterable[str]] = None) -> Dict[str, str]:
    """Write executable stub tools into ``bin_dir``.

    Parameters
    ----------
    bin_dir : Path
        Directory that receives the scripts
    failing : Iterable[str], optional
        Tool roles whose stub exits with status 3 instead

    Returns
    -------
    Dict[str, str]
        Tool role to script path, suitable for the ``tools`` config key
    """
    failing = set(failing or ())
    bin_dir.mkdir(parents=True, exist_ok=True)
    tools = {}
    for role, source in STUB_SOURCES.items():
        body = _FAILING if role in failing else source
        script = bin_dir / role
        script.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body).lstrip())
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        tools[role] = str(script)
    return tools
