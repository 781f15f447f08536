"""
Constants and configuration values used across the kittynode codebase.
"""

# Data root
KITTYNODE_DIR_NAME = ".kittynode"
CONFIG_FILE_NAME = "config.toml"
PACKAGES_DIR_NAME = "packages"
JWT_FILE_NAME = "jwt.hex"
RUNTIME_DIR_NAME = "runtime"
LIGHTHOUSE_DIR_NAME = ".lighthouse"

# JWT secret
JWT_SECRET_BYTES = 32
JWT_SECRET_HEX_LENGTH = JWT_SECRET_BYTES * 2

# Ephemery
EPHEMERY_NETWORK_NAME = "ephemery"
EPHEMERY_LATEST_RELEASE_URL = (
    "https://github.com/ephemery-testnet/ephemery-genesis/releases/latest"
)
EPHEMERY_DOWNLOAD_URL_TEMPLATE = (
    "https://github.com/ephemery-testnet/ephemery-genesis/releases/download/"
    "{tag}/{archive}"
)
EPHEMERY_ARCHIVE_NAME = "network-config.tar.gz"
EPHEMERY_CHECKPOINT_URLS = [
    "https://checkpoint-sync.ephemery.ethpandaops.io/",
    "https://checkpointz.bordel.wtf/",
    "https://ephemery.beaconstate.ethstaker.cc/",
]
EPHEMERY_CONTAINER_MOUNT = "/root/networks/ephemery"
EPHEMERY_EXECUTION_BOOTNODES_FILE = "enodes.txt"
EPHEMERY_CONSENSUS_BOOTNODES_FILE = "bootstrap_nodes.txt"
HTTP_USER_AGENT = "kittynode"
EPHEMERY_DOWNLOAD_TIMEOUT = 120  # seconds
EPHEMERY_DOWNLOAD_CHUNK_SIZE = 64 * 1024  # bytes

# Docker
DOCKER_NETWORK_DRIVER = "bridge"
DEFAULT_IMAGE_TAG = "latest"
CONTAINER_STOP_TIMEOUT = 10  # seconds

# Web service
DEFAULT_WEB_PORT = 3000
WEB_SERVICE_STATE_FILE = "kittynode-web.json"
WEB_SERVICE_LOG_FILE = "kittynode-web.log"
WEB_SERVICE_TOKEN_BYTES = 16
WEB_READY_POLL_ATTEMPTS = 50
WEB_READY_POLL_INTERVAL = 0.1  # seconds between bind checks
WEB_READY_CONNECT_TIMEOUT = 0.05  # seconds per TCP probe
WEB_STOP_TIMEOUT = 5  # seconds before escalating to SIGKILL

# Core client
REMOTE_REQUEST_TIMEOUT = 30.0  # seconds
REMOTE_CONNECTION_TIMEOUT = 10.0  # seconds

# Docker auto-start
DOCKER_START_POLL_INTERVAL = 1.0  # seconds between reachability checks

# System info
MIN_DISK_SIZE_BYTES = 10 * 1024 * 1024 * 1024  # 10 GiB

# Operational state
DOCKER_NOT_RUNNING_DIAGNOSTIC = "Docker is not running locally"
