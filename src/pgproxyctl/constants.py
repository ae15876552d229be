"""Fixed values shared across pgproxyctl."""

NAMESPACE_PREFIX = "postgres-ssm-proxy"
DEFAULT_CONFIG_FILE = "proxy-config.json"
DEFAULT_REGION = "eu-central-1"
DEFAULT_LOCAL_PORT = 1337
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_BASTION_READY_TIMEOUT = 600.0
DEFAULT_LOCK_TIMEOUT = 30.0

CONTAINER_CONFIG_PATH = "/config/proxy-config.json"
CONTAINER_LABEL = "pgproxyctl.config"
LAUNCH_SETTLE_SECONDS = 2.0

DETAIL_DELIMITER = "|"
DETAIL_FIELD_COUNT = 5
