"""
Ethereum package: Reth execution client, Lighthouse beacon node and an
optional Lighthouse validator client.
"""

from typing import Optional

from kittynode.commands.constants import (
    EPHEMERY_CHECKPOINT_URLS,
    EPHEMERY_CONTAINER_MOUNT,
    EPHEMERY_NETWORK_NAME,
)
from kittynode.commands.ephemery import EphemeryCache, EphemeryConfig
from kittynode.commands.errors import UnsupportedNetworkError
from kittynode.commands.home import Home
from kittynode.commands.models import (
    Binding,
    Container,
    Package,
    PackageConfig,
    PortBinding,
)
from kittynode.commands.packages.base import PlanContext

ETHEREUM_NAME = "ethereum"
ETHEREUM_DESCRIPTION = "This package installs an Ethereum node."
ETHEREUM_NETWORK_RESOURCE = "ethereum-network"

RETH_NODE_CONTAINER_NAME = "reth-node"
LIGHTHOUSE_NODE_CONTAINER_NAME = "lighthouse-node"
LIGHTHOUSE_VALIDATOR_CONTAINER_NAME = "lighthouse-validator"
RETH_IMAGE = "ghcr.io/paradigmxyz/reth"
LIGHTHOUSE_IMAGE = "sigp/lighthouse"
RETH_DATA_VOLUME = "rethdata"
LIGHTHOUSE_DATA_DIR = "/root/.lighthouse"

# Package config keys
NETWORK_KEY = "network"
VALIDATOR_ENABLED_KEY = "validator_enabled"
VALIDATOR_FEE_RECIPIENT_KEY = "validator_fee_recipient"

EXECUTION_NETWORKS = ("hoodi", "mainnet", "sepolia")
SUPPORTED_NETWORKS = EXECUTION_NETWORKS + (EPHEMERY_NETWORK_NAME,)

CHECKPOINT_SYNC_URLS = {
    "mainnet": "https://mainnet.checkpoint.sigp.io/",
    "sepolia": "https://checkpoint-sync.sepolia.ethpandaops.io/",
    "hoodi": "https://checkpoint-sync.hoodi.ethpandaops.io",
    EPHEMERY_NETWORK_NAME: EPHEMERY_CHECKPOINT_URLS[0],
}


def supported_networks_display(delimiter: str) -> str:
    return delimiter.join(SUPPORTED_NETWORKS)


def is_supported_network(network: str) -> bool:
    return network in SUPPORTED_NETWORKS


def unsupported_network_error(network: str) -> UnsupportedNetworkError:
    return UnsupportedNetworkError(
        f"Unsupported Ethereum network: {network}. "
        f"Supported values: {supported_networks_display(', ')}",
        network=network,
    )


def network_missing_message() -> str:
    return (
        "Network must be selected before installing Ethereum. Install using "
        f"`kittynode package install {ETHEREUM_NAME} "
        f"--network <{supported_networks_display('|')}>`"
    )


def _ports(*specs: tuple[str, str, str]) -> dict[str, list[PortBinding]]:
    return {
        port: [PortBinding(host_ip=host_ip, host_port=host_port)]
        for port, host_ip, host_port in specs
    }


def _network_selector(network: str) -> list[str]:
    if network == EPHEMERY_NETWORK_NAME:
        return ["--testnet-dir", EPHEMERY_CONTAINER_MOUNT]
    return ["--network", network]


def _ephemery_binding(home: Home) -> Binding:
    return Binding(
        source=str(home.ephemery_metadata_dir),
        destination=EPHEMERY_CONTAINER_MOUNT,
        options="ro",
    )


def _lighthouse_data_binding(home: Home) -> Binding:
    return Binding(source=str(home.lighthouse_dir), destination=LIGHTHOUSE_DATA_DIR)


def build_reth_container(
    network: str, home: Home, ephemery: Optional[EphemeryConfig]
) -> Container:
    reth_dir = f"/root/.local/share/reth/{network}"
    cmd = ["node", "--chain"]
    if network == EPHEMERY_NETWORK_NAME:
        cmd += [f"{EPHEMERY_CONTAINER_MOUNT}/genesis.json", "--datadir", reth_dir]
    else:
        cmd.append(network)
    cmd += [
        "--metrics",
        "0.0.0.0:9001",
        "--authrpc.addr",
        "0.0.0.0",
        "--authrpc.port",
        "8551",
        "--authrpc.jwtsecret",
        f"{reth_dir}/jwt.hex",
    ]

    file_bindings = [
        Binding(source=str(home.jwt_path), destination=f"{reth_dir}/jwt.hex", options="ro")
    ]
    if network == EPHEMERY_NETWORK_NAME:
        if ephemery and ephemery.execution_bootnodes:
            cmd += ["--bootnodes", ",".join(ephemery.execution_bootnodes)]
        file_bindings.append(_ephemery_binding(home))

    return Container(
        name=RETH_NODE_CONTAINER_NAME,
        image=RETH_IMAGE,
        cmd=cmd,
        port_bindings=_ports(
            ("9001/tcp", "0.0.0.0", "9001"),
            ("30303/tcp", "0.0.0.0", "30303"),
            ("30303/udp", "0.0.0.0", "30303"),
        ),
        volume_bindings=[Binding(source=RETH_DATA_VOLUME, destination=reth_dir)],
        file_bindings=file_bindings,
    )


def build_lighthouse_container(
    network: str, home: Home, ephemery: Optional[EphemeryConfig]
) -> Container:
    cmd = ["lighthouse", *_network_selector(network)]
    cmd += [
        "beacon",
        "--http",
        "--http-address",
        "0.0.0.0",
        "--checkpoint-sync-url",
        CHECKPOINT_SYNC_URLS[network],
        "--execution-jwt",
        f"{LIGHTHOUSE_DATA_DIR}/{network}/jwt.hex",
        "--execution-endpoint",
        f"http://{RETH_NODE_CONTAINER_NAME}:8551",
    ]

    file_bindings = [
        _lighthouse_data_binding(home),
        Binding(
            source=str(home.jwt_path),
            destination=f"{LIGHTHOUSE_DATA_DIR}/{network}/jwt.hex",
            options="ro",
        ),
    ]
    if network == EPHEMERY_NETWORK_NAME:
        if ephemery and ephemery.consensus_bootnodes:
            cmd += ["--boot-nodes", ",".join(ephemery.consensus_bootnodes)]
        file_bindings.append(_ephemery_binding(home))

    return Container(
        name=LIGHTHOUSE_NODE_CONTAINER_NAME,
        image=LIGHTHOUSE_IMAGE,
        cmd=cmd,
        port_bindings=_ports(
            ("9000/tcp", "0.0.0.0", "9000"),
            ("9000/udp", "0.0.0.0", "9000"),
            ("9001/udp", "0.0.0.0", "9001"),
            ("5052/tcp", "127.0.0.1", "5052"),
        ),
        file_bindings=file_bindings,
    )


def build_validator_container(network: str, home: Home, fee_recipient: str) -> Container:
    cmd = ["lighthouse", *_network_selector(network)]
    cmd += [
        "vc",
        "--beacon-nodes",
        f"http://{LIGHTHOUSE_NODE_CONTAINER_NAME}:5052",
        "--suggested-fee-recipient",
        fee_recipient,
    ]
    file_bindings = [_lighthouse_data_binding(home)]
    if network == EPHEMERY_NETWORK_NAME:
        file_bindings.append(_ephemery_binding(home))

    return Container(
        name=LIGHTHOUSE_VALIDATOR_CONTAINER_NAME,
        image=LIGHTHOUSE_IMAGE,
        cmd=cmd,
        file_bindings=file_bindings,
    )


def validator_fee_recipient(config: PackageConfig) -> Optional[str]:
    """Fee recipient when the validator is enabled and configured, else None."""
    if config.values.get(VALIDATOR_ENABLED_KEY) != "true":
        return None
    fee_recipient = config.values.get(VALIDATOR_FEE_RECIPIENT_KEY, "").strip()
    return fee_recipient or None


class EthereumPackage:
    """Catalog entry for the Ethereum node package."""

    id = ETHEREUM_NAME

    def build_package(self, config: PackageConfig, context: PlanContext) -> Package:
        package = Package(
            name=ETHEREUM_NAME,
            description=ETHEREUM_DESCRIPTION,
            network_name=ETHEREUM_NETWORK_RESOURCE,
        )

        network = config.values.get(NETWORK_KEY)
        if network is None:
            return package
        self.validate_network(network)

        home = context.home
        package.containers = [
            build_reth_container(network, home, context.ephemery),
            build_lighthouse_container(network, home, context.ephemery),
        ]
        fee_recipient = validator_fee_recipient(config)
        if fee_recipient:
            package.containers.append(
                build_validator_container(network, home, fee_recipient)
            )
        return package

    def plan_context(
        self, config: PackageConfig, home: Home, refresh: bool = False
    ) -> PlanContext:
        if config.values.get(NETWORK_KEY) != EPHEMERY_NETWORK_NAME:
            return PlanContext(home=home)

        cache = EphemeryCache(home)
        ephemery = cache.ensure() if refresh else cache.load_cached()
        return PlanContext(home=home, ephemery=ephemery)

    def supports_network_selection(self) -> bool:
        return True

    def validate_network(self, network: str) -> None:
        if not is_supported_network(network):
            raise unsupported_network_error(network)

    def unconfigured_message(self, config: PackageConfig) -> str:
        if NETWORK_KEY not in config.values:
            return network_missing_message()
        return f"Package '{ETHEREUM_NAME}' is not fully configured for installation"
