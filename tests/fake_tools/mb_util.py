"""Stand-in for mb-util --image_format=pbf <in.mbtiles> <outdir>.

Writes gzip-compressed tiles as <z>/<x>/<y>.pbf plus metadata.json.
"""
import gzip
import json
import sys
from pathlib import Path

args = sys.argv[1:]
if len(args) != 3 or args[0] != "--image_format=pbf":
    print(f"unsupported arguments: {args}", file=sys.stderr)
    sys.exit(2)

source, target = Path(args[1]), Path(args[2])
if not source.is_file():
    print(f"{source} not found", file=sys.stderr)
    sys.exit(1)
if target.exists():
    print(f"Directory {target} already exists", file=sys.stderr)
    sys.exit(1)

for zoom in (14, 15, 16):
    for x in range(2):
        for y in range(2):
            tile = target / str(zoom) / str(x) / f"{y}.pbf"
            tile.parent.mkdir(parents=True, exist_ok=True)
            tile.write_bytes(gzip.compress(f"tile {zoom}/{x}/{y}".encode()))

(target / "metadata.json").write_text(json.dumps({"format": "pbf"}))
