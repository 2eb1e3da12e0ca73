"""Stand-in for ogr2ogr -f GeoJSON <out> <in>.

Set FAKE_OGR2OGR_FAIL to a layer name to make that conversion fail.
"""
import json
import os
import sys
from pathlib import Path

args = sys.argv[1:]
if len(args) != 4 or args[:2] != ["-f", "GeoJSON"]:
    print(f"unsupported arguments: {args}", file=sys.stderr)
    sys.exit(2)

output, source = Path(args[2]), Path(args[3])
if os.environ.get("FAKE_OGR2OGR_FAIL") == source.stem:
    print(f"ERROR 1: Unable to open datasource `{source}'", file=sys.stderr)
    sys.exit(1)
if not source.is_file():
    print(f"ERROR 1: Unable to open datasource `{source}'", file=sys.stderr)
    sys.exit(1)

output.write_text(json.dumps({"type": "FeatureCollection", "name": source.stem, "features": []}))
