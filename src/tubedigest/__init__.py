"""tubedigest - summarise YouTube videos and chat about them."""

__version__ = "0.1.0"
