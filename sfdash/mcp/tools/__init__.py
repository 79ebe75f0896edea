import importlib
import logging
import pkgutil

logger = logging.getLogger(__name__)

# This code dynamically finds and imports all Python modules in this
# directory. When each module is imported, any functions decorated with
# @register_tool will be automatically added to the mcp_server instance.
for _, name, _ in pkgutil.iter_modules(__path__):
    importlib.import_module(f".{name}", __package__)
    logger.info("Loaded tools from: %s.py", name)
