from __future__ import annotations
import tempfile
from pathlib import Path
import subprocess
import textwrap

from pyfledgling.profiles.loader import apply_profile, load_profile
from pyfledgling.mcp.server import McpServer

def main():
    with tempfile.TemporaryDirectory() as td:
        root = Path(td)
        (root / "app.py").write_text(textwrap.dedent("""\
            import os

            class Greeter:
                def greet(self, name):
                    return f"hello {name}"

            def main():
                print(Greeter().greet(os.getcwd()))
            """), encoding="utf-8")
        (root / "README.md").write_text("# Demo\n\n## Usage\n\nRun it.\n", encoding="utf-8")

        subprocess.run(["git", "init", "-q"], cwd=root, check=True)
        subprocess.run(["git", "add", "."], cwd=root, check=True)
        subprocess.run(
            ["git", "-c", "user.name=selftest", "-c", "user.email=selftest@example.com", "commit", "-q", "-m", "init"],
            cwd=root, check=True,
        )

        tools, ctx = apply_profile(load_profile("analyst"), root=str(root), conversations=str(root / "none/*.jsonl"))
        server = McpServer(tools, ctx)

        def show(name, **args):
            res = server.call_tool(name, args)
            print(f"== {name} {args}{' (error)' if res.is_error else ''}")
            print(res.content)

        show("ListFiles", pattern="**/*")
        show("ReadLines", file_path="app.py", lines="3-5")
        show("FindDefinitions", file_pattern="*.py")
        show("FindCalls", file_pattern="*.py", name_pattern="greet")
        show("MDOutline", file_pattern="*.md")
        show("GitChanges")
        show("Help", section="tips")
        show("list_tables")
        # refused: outside the root
        show("ReadLines", file_path="../../etc/passwd")
        ctx.engine.close()

if __name__ == "__main__":
    main()
