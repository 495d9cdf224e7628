"""Core building blocks shared by all neo-authz features."""
