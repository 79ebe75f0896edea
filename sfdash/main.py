# sfdash/main.py
import logging
import sys

from sfdash.config import HOST, LOG_LEVEL, PORT
from sfdash.mcp.server import mcp_server, tool_registry

# IMPORTANT: importing the tools package runs every @register_tool.
import sfdash.mcp.tools  # noqa: F401


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(stream=sys.stderr, level=LOG_LEVEL)
    logging.info("Tools: %s", ", ".join(tool_registry.keys()) or "(none)")

    if "--mcp-stdio" in argv:
        logging.info("MCP starting (stdio)")
        mcp_server.run(transport="stdio")
    elif "--http" in argv:
        logging.info("HTTP starting on %s:%s (/mcp and /api/*)", HOST, PORT)
        mcp_server.run(transport="streamable-http")
    else:
        print("usage: python -m sfdash.main [--mcp-stdio | --http]", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
