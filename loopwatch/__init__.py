"""Live monitor for an automated trading loop"""

__version__ = "0.1.0"
