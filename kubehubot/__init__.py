"""kubehubot: forwards Kubernetes resource changes to Hubot chat rooms."""

__version__ = "0.1.0"
