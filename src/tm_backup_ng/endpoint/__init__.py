# pyright: standard

"""tm-backup-ng: tm_backup_ng/endpoint/__init__.py."""

import getpass
import urllib.parse
from pathlib import Path

from ..__logger__ import logger

from .local import LocalEndpoint
from .ssh import SSHEndpoint


def choose_endpoint(spec, common_config=None):
    """
    Chooses a suitable endpoint based on the specification given.

    Args:
        spec (str): The endpoint specification (e.g., "ssh://user@host/path" or a local path).
        common_config (dict): A dictionary with common configuration settings for all endpoints.

    Returns:
        Endpoint: An instance of the appropriate `Endpoint` subclass.

    Raises:
        ValueError: If no suitable endpoint can be determined for the given specification.
    """
    config = dict(common_config or {})

    if spec.startswith("ssh://"):
        parsed = urllib.parse.urlparse(spec)
        if not parsed.hostname:
            raise ValueError(f"No hostname for SSH specified: {spec}")
        try:
            port = parsed.port or config.get("ssh_port")
        except ValueError as e:
            raise ValueError(f"Invalid SSH port in {spec}: {e}") from e

        # Path handling - keep it as a plain string, it lives on another host
        config["path"] = parsed.path.strip() or "/"
        logger.debug("Parsed SSH URL: %s", spec)
        logger.debug("Username from URL: %s", parsed.username)
        logger.debug("Hostname from URL: %s", parsed.hostname)
        logger.debug("Port: %s", port)
        logger.debug("Path from URL: %s", config["path"])

        return SSHEndpoint(
            parsed.hostname,
            config=config,
            username=parsed.username or getpass.getuser(),
            port=port,
            ssh_identity_file=config.get("ssh_identity_file"),
            ssh_opts=config.get("ssh_opts", []),
        )

    if "://" in spec:
        raise ValueError(f"No endpoint could be generated for this specification: {spec}")

    config["path"] = Path(spec)
    logger.debug("Creating local endpoint for %s", spec)
    return LocalEndpoint(config=config)
