"""AS3 agent - push declarative configuration to BIG-IP, latest state wins."""
__version__ = "0.1.0"
