"""Centralized constants for hub handoff to eliminate duplicate strings."""

# Managed cluster annotations
MANAGED_CLUSTER_MIGRATING = "global-hub.open-cluster-management.io/migrating"
KLUSTERLET_CONFIG_ANNOTATION = "agent.open-cluster-management.io/klusterlet-config"

# Bootstrap secrets
BOOTSTRAP_SECRET_BACKUP_SUFFIX = "-backup"

# Managed cluster conditions
MANAGED_CLUSTER_CONDITION_AVAILABLE = "ManagedClusterConditionAvailable"
CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

# Klusterlet config bootstrap types
BOOTSTRAP_TYPE_LOCAL_SECRETS = "LocalSecrets"

# API coordinates
CLUSTER_API_GROUP = "cluster.open-cluster-management.io"
CLUSTER_API_VERSION = "v1"
MANAGED_CLUSTER_PLURAL = "managedclusters"

KLUSTERLET_CONFIG_API_GROUP = "config.open-cluster-management.io"
KLUSTERLET_CONFIG_API_VERSION = "v1alpha1"
KLUSTERLET_CONFIG_PLURAL = "klusterletconfigs"

# Detachment polling (seconds)
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_OUTCOME_HISTORY = 100

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPT = 130
