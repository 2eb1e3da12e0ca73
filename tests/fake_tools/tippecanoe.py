"""Stand-in for tippecanoe -z <max> -Z <min> -o <out> <inputs...>."""
import sys
from pathlib import Path

args = sys.argv[1:]
try:
    output = Path(args[args.index("-o") + 1])
    max_zoom = args[args.index("-z") + 1]
    min_zoom = args[args.index("-Z") + 1]
except (ValueError, IndexError):
    print(f"missing required options: {args}", file=sys.stderr)
    sys.exit(2)

inputs = [Path(arg) for arg in args if arg.endswith(".json")]
missing = [str(path) for path in inputs if not path.is_file()]
if not inputs or missing:
    print(f"missing inputs: {missing}", file=sys.stderr)
    sys.exit(1)
if output.exists():
    print(f"{output}: file exists", file=sys.stderr)
    sys.exit(1)

output.write_bytes(f"SQLite format 3\0 zoom {min_zoom}-{max_zoom} layers {len(inputs)}".encode())
print(f"{len(inputs)} layers, zoom {min_zoom}-{max_zoom}", file=sys.stderr)
