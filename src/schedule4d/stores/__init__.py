"""Store implementations."""

from schedule4d.stores.yaml_store import YamlStore

__all__ = ["YamlStore"]
