from typing import List, Optional, Tuple
from urllib.parse import quote
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PORT = 27017


class ServerAddress(BaseModel):
    """Address of a single MongoDB node"""
    model_config = ConfigDict(frozen=True)

    host: str = Field(..., description="Host name or IP address", min_length=1)
    port: int = Field(default=DEFAULT_PORT, description="Port number", ge=1, le=65535)

    @classmethod
    def parse(cls, address: str) -> "ServerAddress":
        """
        Parse a `host[:port]` string

        IPv6 literals must be enclosed in brackets, e.g. `[::1]:27017`.
        """
        address = address.strip()
        if not address:
            raise ValueError("Server address must not be empty")

        if address.startswith("["):
            end = address.find("]")
            if end < 0:
                raise ValueError(f"Unterminated IPv6 literal in '{address}'")
            host = address[1:end]
            rest = address[end + 1:]
            if rest and not rest.startswith(":"):
                raise ValueError(f"Invalid server address '{address}'")
            port = rest[1:] if rest else None
        elif address.count(":") == 1:
            host, port = address.split(":")
        else:
            host, port = address, None

        if port is None or port == "":
            return cls(host=host)
        try:
            return cls(host=host, port=int(port))
        except ValueError:
            raise ValueError(f"Invalid port in server address '{address}'")

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


class ReplicaSet(BaseModel):
    """Immutable description of a replica set's candidate nodes"""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(None, description="Replica set name, if known")
    addresses: Tuple[ServerAddress, ...] = Field(..., description="Seed addresses in configured order", min_length=1)

    @classmethod
    def parse(cls, hosts: str) -> "ReplicaSet":
        """
        Parse a host list of the form `[name/]host1[:port],host2[:port],...`

        Duplicate addresses are dropped, keeping the first occurrence.
        """
        if hosts is None or not hosts.strip():
            raise ValueError("Host list must not be empty")

        hosts = hosts.strip()
        name = None
        if "/" in hosts:
            name, hosts = hosts.split("/", 1)
            name = name.strip() or None

        addresses: List[ServerAddress] = []
        for part in hosts.split(","):
            if not part.strip():
                continue
            address = ServerAddress.parse(part)
            if address not in addresses:
                addresses.append(address)

        if not addresses:
            raise ValueError(f"No server addresses found in '{hosts}'")

        return cls(name=name, addresses=tuple(addresses))

    @classmethod
    def parse_all(cls, hosts: str) -> List["ReplicaSet"]:
        """Parse several `;`-separated host lists"""
        if hosts is None:
            raise ValueError("Host list must not be empty")
        replica_sets = [cls.parse(part) for part in hosts.split(";") if part.strip()]
        if not replica_sets:
            raise ValueError("Host list must not be empty")
        return replica_sets

    @property
    def has_name(self) -> bool:
        return self.name is not None

    def connection_string(self) -> str:
        """Build a `mongodb://` URI addressing every seed node"""
        seeds = ",".join(str(address) for address in self.addresses)
        if self.name:
            return f"mongodb://{seeds}/?replicaSet={quote(self.name)}"
        return f"mongodb://{seeds}/"

    def __str__(self) -> str:
        seeds = ",".join(str(address) for address in self.addresses)
        return f"{self.name}/{seeds}" if self.name else seeds
