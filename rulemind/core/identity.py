"""
Identity — Who is talking

The client key partitions conversation logs and context: "<type>_<name>".
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ClientIdentity:
    """A client as seen by the service layer (e.g. type "host", name "localhost")."""
    type: str
    name: str

    @property
    def client(self) -> str:
        return f"{self.type}_{self.name}"

    @classmethod
    def from_client(cls, client: str) -> 'ClientIdentity':
        """Inverse of .client; everything before the first '_' is the type."""
        type_, _, name = client.partition("_")
        return cls(type=type_, name=name)


DEFAULT_IDENTITY = ClientIdentity(type="host", name="localhost")
DEFAULT_CLIENT = DEFAULT_IDENTITY.client
