import sys
import runpy

# debugpy puts the real arguments after "--"
if "--" in sys.argv:
    args = sys.argv[sys.argv.index("--") + 1 :]
else:
    args = sys.argv[1:]

sys.argv = ["pyfledgling"] + args

# same as: python -m pyfledgling.main ...
runpy.run_module("pyfledgling.main", run_name="__main__")
