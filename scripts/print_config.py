from __future__ import annotations

import json
import sys

from panelcore.core.config import ConfigLoader, ConfigPaths


def main() -> None:
    config_dir = sys.argv[1] if len(sys.argv) >= 2 else "config"
    cfg = ConfigLoader(ConfigPaths(config_dir)).load()
    data = cfg.model_dump()
    data["users"]["default_owner_password"] = "***REDACTED***"
    print(json.dumps(data, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
