"""MCP server definition, tool registration and HTTP route mounting"""
import inspect
import logging

import pydantic
from mcp.server.fastmcp import FastMCP

from sfdash.config import HOST, PORT
from sfdash.web.routes import register_routes

logger = logging.getLogger(__name__)


def parse_docstring(func):
    """A simple parser for a standard Python docstring."""
    docstring = inspect.getdoc(func)
    if not docstring:
        return "No description available.", {}

    lines = docstring.strip().split('\n')
    description = lines[0].strip()
    arg_descriptions = {}
    args_section = False

    for line in lines[1:]:
        line = line.strip()
        if line.lower() in ('args:', 'parameters:'):
            args_section = True
            continue
        if line.lower() in ('returns:', 'raises:'):
            args_section = False
            continue
        if args_section and ':' in line:
            arg_name, arg_desc = line.split(':', 1)
            # "name (type): text" -> name
            arg_descriptions[arg_name.split("(")[0].strip()] = arg_desc.strip()

    return description, arg_descriptions


def create_model_from_func(func, arg_descriptions):
    """Creates a Pydantic model from a function's signature and descriptions."""
    fields = {}
    for param in inspect.signature(func).parameters.values():
        field_info = {
            "description": arg_descriptions.get(param.name, ""),
        }
        if param.default is not inspect.Parameter.empty:
            field_info["default"] = param.default
        fields[param.name] = (param.annotation, pydantic.Field(**field_info))

    return pydantic.create_model(f"{func.__name__}Schema", **fields)


mcp_server = FastMCP(name="salesforce-dashboard-server", host=HOST, port=PORT)
register_routes(mcp_server)

tool_registry = {}


def add_tool_to_registry(func):
    """
    Parses a function, generates its schema, and adds it to the global tool_registry.
    """
    tool_name = func.__name__

    try:
        description, arg_descriptions = parse_docstring(func)
        schema = create_model_from_func(func, arg_descriptions)

        tool_registry[tool_name] = {
            "name": tool_name,
            "description": description,
            "schema": schema,
            "function": func
        }

        mcp_server.tool()(func)
        logger.info(f"Registered tool: '{tool_name}'")

    except Exception as e:
        logger.error(f"Failed to register tool '{tool_name}': {e}")


def register_tool(func):
    """A decorator that registers a function as a tool."""
    add_tool_to_registry(func)
    return func


__all__ = ['mcp_server', 'register_tool', 'tool_registry']
