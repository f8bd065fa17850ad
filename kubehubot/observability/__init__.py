"""Logging and metrics for kubehubot."""
