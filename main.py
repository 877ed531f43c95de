# main.py
import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Sequence
from typing import Dict as PyDict

import structlog
import yaml

from common.constants import NPC_DEFINITION_CAPACITY
from game.definitions.parser import DefinitionParseError, NpcDefinitionParser
from game.definitions.registry import (
    NpcDefinitionRegistry,
    definitions,
    init_definitions,
)
from utils.logging_utils import setup_logging

# --- Paths relative to this script's location ---
SCRIPT_DIR = Path(__file__).parent.resolve()
CONFIG_DIR = SCRIPT_DIR / "config"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
DEFAULT_NPC_DATA_FILE = SCRIPT_DIR / "data" / "npc_definitions.yaml"
# --- End Paths ---

log = structlog.get_logger()  # module-level logger


@dataclass
class Configs:
    """Settings needed to start the definition tables."""

    main: PyDict[str, Any] = field(default_factory=dict)
    npc_data: Path = DEFAULT_NPC_DATA_FILE
    npc_capacity: int = NPC_DEFINITION_CAPACITY


# --- Config Loading Helpers ---
def load_yaml_config(config_path: Path, config_name: str) -> PyDict[str, Any]:
    """Loads a generic YAML configuration file."""
    if not config_path.is_file():
        log.error(f"{config_name} config file not found", path=str(config_path))
        raise FileNotFoundError(
            f"{config_name} configuration file not found: {config_path}"
        )
    try:
        with config_path.open("r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
        if config_data is None:
            log.warning(f"{config_name} config file is empty.", path=str(config_path))
            return {}
        log.info(f"{config_name} config loaded", path=str(config_path))
        return config_data
    except yaml.YAMLError as e:
        log.error(
            f"Error parsing YAML for {config_name}",
            path=str(config_path),
            error=str(e),
            exc_info=True,
        )
        raise


def load_configs(config_file: Path = CONFIG_FILE) -> Configs:
    """Read the main config and resolve the definition table settings."""
    main_config = load_yaml_config(config_file, "Main")
    section = main_config.get("definitions", {}) or {}

    npc_data = Path(section.get("npc_data", DEFAULT_NPC_DATA_FILE))
    if not npc_data.is_absolute():
        # Relative paths are resolved against the project root
        npc_data = config_file.parent.parent / npc_data

    capacity = section.get("npc_capacity", NPC_DEFINITION_CAPACITY)
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
        log.error("Invalid npc_capacity in config", value=capacity)
        raise ValueError(f"definitions.npc_capacity must be an integer >= 0: {capacity!r}")

    return Configs(main=main_config, npc_data=npc_data, npc_capacity=capacity)


# --- End Config Loading ---


def init_registry(configs: Configs) -> NpcDefinitionRegistry:
    """Run the one-time start-up of the NPC definition table."""
    return init_definitions(
        NpcDefinitionParser(configs.npc_data), capacity=configs.npc_capacity
    )


def print_definitions(
    registry: NpcDefinitionRegistry, ids: Sequence[int], show_all: bool
) -> int:
    """Print the requested definitions. Returns the number of ids not found."""
    missing = 0
    if show_all:
        for definition in registry.populated():
            print(f"{definition.id}: {definition.name}")
    for definition_id in ids:
        definition = registry.find(definition_id)
        if definition is None:
            print(f"{definition_id}: <not found>")
            missing += 1
            continue
        actions = ", ".join(definition.actions) or "-"
        print(
            f"{definition.id}: {definition.name} "
            f"(size {definition.size}, actions: {actions})"
        )
        if definition.examine:
            print(f"    {definition.examine}")
    return missing


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Look up NPC definitions by id.")
    parser.add_argument("ids", nargs="*", type=int, help="NPC definition ids")
    parser.add_argument("--config", type=Path, default=CONFIG_FILE)
    parser.add_argument(
        "--all", action="store_true", help="list every loaded definition"
    )
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    parser.add_argument("--log-level", default="INFO", help="logging level name")
    return parser


def main(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    setup_logging("DEBUG" if args.debug else args.log_level)
    try:
        configs = load_configs(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        log.critical("Could not load configuration", error=str(e))
        return 2

    log.info(
        "Starting NPC definition lookup",
        data=str(configs.npc_data),
        capacity=configs.npc_capacity,
    )

    try:
        init_registry(configs)
    except (
        FileNotFoundError,
        DefinitionParseError,
        json.JSONDecodeError,
        yaml.YAMLError,
    ) as e:
        log.critical(
            "Could not load NPC definitions", path=str(configs.npc_data), error=str(e)
        )
        return 2
    missing = print_definitions(definitions(), args.ids, args.all)
    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(main())
