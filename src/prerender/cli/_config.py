"""Build a RenderConfig from parsed CLI arguments.

Flags that were not given keep the RenderConfig defaults.
"""

import argparse
from typing import Any

from prerender.config import RenderConfig

# CLI attribute -> RenderConfig field
_FLAG_FIELDS = {
    "host": "host",
    "port": "port",
    "entry": "entry",
    "shell": "shell_path",
    "timeout": "render_timeout",
    "settle": "settle_ms",
    "log_level": "log_level",
    "log_format": "log_format",
}


def config_from_args(args: argparse.Namespace) -> RenderConfig:
    overrides: dict[str, Any] = {"dist_dir": args.dist}
    for attr, field_name in _FLAG_FIELDS.items():
        value = getattr(args, attr, None)
        if value is not None:
            overrides[field_name] = value
    if getattr(args, "no_cache_bundle", False):
        overrides["cache_bundle"] = False
    if getattr(args, "block_external", False):
        overrides["block_external_requests"] = True

    return RenderConfig(**overrides)
