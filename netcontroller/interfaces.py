"""
Network Interface Discovery

Resolves the host-side bridge interface of a Docker network, which is where
the impairment rules are installed.
"""

import logging
from typing import Optional

import docker
from docker.errors import DockerException, NotFound

from .errors import NetworkControllerError

logger = logging.getLogger("InterfaceDiscovery")

BRIDGE_NAME_OPTION = "com.docker.network.bridge.name"


class DockerNotAvailableError(NetworkControllerError):
    """Raised when Docker is not available or not running"""
    pass


def get_docker_client():
    """
    Get Docker client instance

    Raises:
        DockerNotAvailableError: If Docker is not available
    """
    try:
        client = docker.from_env()
        client.ping()
        return client
    except DockerException as e:
        raise DockerNotAvailableError(f"Cannot connect to Docker: {e}") from e


def bridge_interface_name(network_attrs: dict) -> Optional[str]:
    """
    Derive the host interface of a bridge network from its attributes

    Docker names bridges br-<first 12 characters of the network id> unless
    the network sets an explicit bridge name (the default "bridge" network
    uses docker0 this way).
    """
    options = network_attrs.get("Options") or {}
    name = options.get(BRIDGE_NAME_OPTION)
    if name:
        return name

    driver = network_attrs.get("Driver")
    if driver and driver != "bridge":
        logger.warning(f"Network {network_attrs.get('Name')} uses driver {driver}, not a bridge")
        return None

    network_id = network_attrs.get("Id", "")
    if not network_id:
        return None
    return f"br-{network_id[:12]}"


def get_docker_interface_name(network_id: str, client=None) -> Optional[str]:
    """
    Find the host interface of a Docker network

    Args:
        network_id: Docker network name or id
        client: Docker client (default: from environment)

    Returns:
        Interface name, or None if the network does not exist
    """
    client = client or get_docker_client()
    try:
        network = client.networks.get(network_id)
    except NotFound:
        logger.error(f"Docker network {network_id} not found")
        return None

    name = bridge_interface_name(network.attrs)
    if name:
        logger.info(f"Docker network {network_id} uses interface {name}")
    return name
