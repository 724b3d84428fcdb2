"""Field names shared by resources, data sources and the provider."""

# common
FIELD_ID = "id"
FIELD_PATH = "path"
FIELD_MOUNT = "mount"
FIELD_NAME = "name"
FIELD_TYPE = "type"
FIELD_DESCRIPTION = "description"
FIELD_NAMESPACE = "namespace"
FIELD_DATA = "data"
FIELD_DATA_JSON = "data_json"
FIELD_DISABLE_READ = "disable_read"
FIELD_DELETE_ALL_VERSIONS = "delete_all_versions"
FIELD_METADATA = "metadata"
FIELD_CUSTOM_METADATA = "custom_metadata"
FIELD_VERSION = "version"
FIELD_OPTIONS = "options"
FIELD_CAS = "cas"
FIELD_POLICY = "policy"
FIELD_POLICIES = "policies"
FIELD_DISABLED = "disabled"

# kv v2 metadata
FIELD_MAX_VERSIONS = "max_versions"
FIELD_CAS_REQUIRED = "cas_required"
FIELD_DELETE_VERSION_AFTER = "delete_version_after"
FIELD_DELETION_TIME = "deletion_time"

# leases
FIELD_LEASE_ID = "lease_id"
FIELD_LEASE_DURATION = "lease_duration"
FIELD_LEASE_RENEWABLE = "lease_renewable"
FIELD_LEASE_START_TIME = "lease_start_time"
FIELD_WITH_LEASE_START_TIME = "with_lease_start_time"

# mounts
FIELD_DEFAULT_LEASE_TTL = "default_lease_ttl_seconds"
FIELD_MAX_LEASE_TTL = "max_lease_ttl_seconds"
FIELD_FORCE_NO_CACHE = "force_no_cache"
FIELD_AUDIT_NON_HMAC_REQUEST_KEYS = "audit_non_hmac_request_keys"
FIELD_AUDIT_NON_HMAC_RESPONSE_KEYS = "audit_non_hmac_response_keys"
FIELD_LISTING_VISIBILITY = "listing_visibility"
FIELD_PASSTHROUGH_REQUEST_HEADERS = "passthrough_request_headers"
FIELD_ALLOWED_RESPONSE_HEADERS = "allowed_response_headers"
FIELD_PLUGIN_VERSION = "plugin_version"
FIELD_LOCAL = "local"
FIELD_SEAL_WRAP = "seal_wrap"
FIELD_EXTERNAL_ENTROPY_ACCESS = "external_entropy_access"
FIELD_ACCESSOR = "accessor"
FIELD_TOKEN_TYPE = "token_type"

# namespaces
FIELD_PATH_FQ = "path_fq"
FIELD_NAMESPACE_ID = "namespace_id"

# identity
FIELD_GROUP_ID = "group_id"
FIELD_GROUP_NAME = "group_name"
FIELD_MEMBER_ENTITY_IDS = "member_entity_ids"
FIELD_MEMBER_GROUP_IDS = "member_group_ids"
FIELD_EXCLUSIVE = "exclusive"
FIELD_EXTERNAL = "external"
FIELD_INTERNAL = "internal"
FIELD_EXTERNAL_MEMBER_ENTITY_IDS = "external_member_entity_ids"
FIELD_EXTERNAL_MEMBER_GROUP_IDS = "external_member_group_ids"

# generic endpoint
FIELD_DISABLE_DELETE = "disable_delete"
FIELD_IGNORE_ABSENT_FIELDS = "ignore_absent_fields"
FIELD_WRITE_FIELDS = "write_fields"
FIELD_WRITE_DATA = "write_data"
FIELD_WRITE_DATA_JSON = "write_data_json"

# policy document
FIELD_RULE = "rule"
FIELD_HCL = "hcl"

# provider
FIELD_ADDRESS = "address"
FIELD_TOKEN = "token"
FIELD_TOKEN_NAME = "token_name"
FIELD_SKIP_CHILD_TOKEN = "skip_child_token"
FIELD_SKIP_TLS_VERIFY = "skip_tls_verify"
FIELD_MAX_RETRIES = "max_retries"
FIELD_MAX_RETRIES_CCC = "max_retries_ccc"

# api path roots
PATH_DELIM = "/"
SYS_NAMESPACE_ROOT = "sys/namespaces/"
SYS_MOUNTS_ROOT = "sys/mounts/"
SYS_AUTH_ROOT = "sys/auth/"
SYS_REMOUNT = "sys/remount"
SYS_POLICY_ACL_ROOT = "sys/policies/acl/"
SYS_INTERNAL_UI_MOUNTS = "sys/internal/ui/mounts/"
IDENTITY_ENTITY_ROOT = "identity/entity"
IDENTITY_GROUP_ROOT = "identity/group"
