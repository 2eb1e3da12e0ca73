"""Stand-in for mapcutter: copies every shapefile in the cwd into clipped/."""
import shutil
import sys
from pathlib import Path

args = sys.argv[1:]
if len(args) != 2 or args[0] != "-b=" or not args[1].startswith("["):
    print(f"usage: mapcutter -b= [w,s,e,n] (got {args})", file=sys.stderr)
    sys.exit(2)

sources = sorted(Path.cwd().glob("*.shp"))
if not sources:
    print("no shapefiles found", file=sys.stderr)
    sys.exit(3)

clipped = Path.cwd() / "clipped"
clipped.mkdir(exist_ok=True)
for source in sources:
    shutil.copy(source, clipped / source.name)
(clipped / "bounds.txt").write_text(args[1])
print(f"clipped {len(sources)} shapefiles to {args[1]}")
