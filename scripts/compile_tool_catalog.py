import sys
import yaml
import logging
import argparse
import importlib
from pathlib import Path
from typing import Any, Dict, List

from serpstat_mcp.servers.local import available_servers

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def describe_server(server_name: str) -> Dict[str, Any]:
    """Catalog entry for one server: its tools with upstream methods and schemas"""
    module = importlib.import_module(f"serpstat_mcp.servers.{server_name}.main")
    tools: List[Dict[str, Any]] = [
        {
            "name": tool.name,
            "upstream_method": tool.upstream_method,
            "description": tool.description,
            "input_schema": tool.input_schema(),
        }
        for tool in module.TOOLS
    ]
    return {"server_id": server_name, "tool_count": len(tools), "tools": tools}


def build_catalog() -> Dict[str, Dict[str, Any]]:
    """Describe every server found in the servers package"""
    catalog = {}
    for server_name in available_servers():
        logger.info(f"Processing server: {server_name}")
        catalog[server_name] = describe_server(server_name)
    return catalog


def write_catalog(output_path: str) -> bool:
    """Write the tool catalog as YAML.

    Args:
        output_path: Path where the catalog should be saved
    Returns:
        bool: True if successful, False otherwise
    """
    try:
        catalog = build_catalog()
    except (ImportError, ValueError) as e:
        logger.error(f"Failed to build tool catalog: {str(e)}")
        return False

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, "w") as f:
        yaml.safe_dump(catalog, f, sort_keys=False)

    total = sum(entry["tool_count"] for entry in catalog.values())
    logger.info(f"Successfully generated tool catalog at: {output_file}")
    logger.info(f"Servers: {len(catalog)}, tools: {total}")
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Generate a YAML catalog of every Serpstat tool"
    )
    parser.add_argument(
        "--output",
        "-o",
        default="catalog/tools.yaml",
        help="Path where the catalog should be saved (default: catalog/tools.yaml)",
    )

    args = parser.parse_args()
    success = write_catalog(args.output)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
