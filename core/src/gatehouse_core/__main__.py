from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

import uvicorn

from gatehouse_core.app import create_app
from gatehouse_core.config import load_core_config, resolve_configured_paths
from gatehouse_core.home import ensure_gatehouse_layout, resolve_gatehouse_home


def main() -> None:
    home = resolve_gatehouse_home()
    paths = ensure_gatehouse_layout(home)

    config = load_core_config(paths)
    paths = resolve_configured_paths(paths, config)

    log_file = paths.logs_dir / "core.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            RotatingFileHandler(
                log_file,
                maxBytes=config.logging.max_size_mb * 1024 * 1024,
                backupCount=config.logging.backup_count,
            ),
            logging.StreamHandler(),
        ],
    )

    host = os.environ.get("GATEHOUSE_BIND") or config.network.bind_host

    env_port = os.environ.get("GATEHOUSE_PORT")
    port = int(env_port) if env_port else config.network.core_port

    # The welcome gate classifies the socket peer, not a proxy-reported client.
    uvicorn.run(create_app(), host=host, port=port, proxy_headers=False)


if __name__ == "__main__":
    main()
