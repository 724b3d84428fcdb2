import os
from dotenv import load_dotenv
import os.path

# Load environment variables from a .env file in the working directory
dotenv_path = os.path.join(os.getcwd(), '.env')
load_dotenv(dotenv_path=dotenv_path)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# --- Vault connection ---
VAULT_ADDR = os.environ.get('VAULT_ADDR')
VAULT_TOKEN = os.environ.get('VAULT_TOKEN', '')
VAULT_NAMESPACE = os.environ.get('VAULT_NAMESPACE', '')
VAULT_SKIP_VERIFY = _env_bool('VAULT_SKIP_VERIFY')
VAULT_CACERT = os.environ.get('VAULT_CACERT') or None
VAULT_CLIENT_CERT = os.environ.get('VAULT_CLIENT_CERT') or None
VAULT_CLIENT_KEY = os.environ.get('VAULT_CLIENT_KEY') or None
VAULT_TOKEN_NAME = os.environ.get('VAULT_TOKEN_NAME', 'vault-provisioner')

# --- Retries ---
DEFAULT_MAX_RETRIES = 2
DEFAULT_MAX_RETRIES_CCC = 10
VAULT_MAX_RETRIES = int(os.environ.get('VAULT_MAX_RETRIES', DEFAULT_MAX_RETRIES))
VAULT_MAX_RETRIES_CCC = int(os.environ.get('VAULT_MAX_RETRIES_CCC', DEFAULT_MAX_RETRIES_CCC))

# --- Child token ---
SKIP_CHILD_TOKEN = _env_bool('VAULT_PROVISIONER_SKIP_CHILD_TOKEN')
# 20 minutes, enough for most applies
MAX_LEASE_TTL_SECONDS = int(os.environ.get('VAULT_PROVISIONER_MAX_TTL', 1200))

# --- Namespace import ---
ENV_NAMESPACE_IMPORT = 'VAULT_PROVISIONER_NAMESPACE_IMPORT'

# --- Local files ---
STATE_PATH = os.environ.get('VAULT_PROVISIONER_STATE', 'vault-provisioner.state.json')
CONFIG_PATH = os.environ.get('VAULT_PROVISIONER_CONFIG', 'vault-provisioner.json')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


def _env_log_level(name: str, default: str = 'INFO') -> str:
    # argparse does not check defaults against choices
    value = os.environ.get(name, '').strip().upper()
    return value if value in LOG_LEVELS else default


LOG_LEVEL = _env_log_level('VAULT_PROVISIONER_LOG_LEVEL')

# Path to .env file for configuration
ENV_PATH = dotenv_path
