"""Name-based classification of network interfaces and block devices.

Decides which OS resources count toward host totals. The decision depends
only on the resource name so an interface is included or excluded the same
way every cycle; a flapping inclusion would corrupt the delta computation.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum

from es_monitor.core.constants import (
    DISK_DENY_PREFIXES,
    NETWORK_DENY_EXACT,
    NETWORK_DENY_PREFIXES,
    PHYSICAL_INTERFACE_PREFIXES,
)
from es_monitor.core.schemas import ClassifierConfig

# Biosdevname PCI slot naming, e.g. p1p1, p2p3
_PCI_SLOT_NAME = re.compile(r"^p\d+p\d+")


class ResourceKind(str, Enum):
    NETWORK = "network"
    DISK = "disk"


class ResourceClassifier:
    """Deny-list / allow-list classifier for OS resource names.

    Unknown disk names are countable; unknown interface names are countable
    but not physical.
    """

    def __init__(
        self,
        network_deny_exact: Iterable[str] = NETWORK_DENY_EXACT,
        network_deny_prefixes: Iterable[str] = NETWORK_DENY_PREFIXES,
        disk_deny_prefixes: Iterable[str] = DISK_DENY_PREFIXES,
        physical_prefixes: Iterable[str] = PHYSICAL_INTERFACE_PREFIXES,
    ) -> None:
        self._network_deny_exact = frozenset(network_deny_exact)
        self._network_deny_prefixes = tuple(network_deny_prefixes)
        self._disk_deny_prefixes = tuple(disk_deny_prefixes)
        self._physical_prefixes = tuple(physical_prefixes)

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> ResourceClassifier:
        return cls(
            network_deny_exact=config.network_deny_exact,
            network_deny_prefixes=config.network_deny_prefixes,
            disk_deny_prefixes=config.disk_deny_prefixes,
            physical_prefixes=config.physical_prefixes,
        )

    def is_countable(self, name: str, kind: ResourceKind = ResourceKind.NETWORK) -> bool:
        """Whether a resource contributes to host totals.

        Args:
            name: Interface or device name as reported by the OS
            kind: Resource family the name belongs to

        Returns:
            False for loopback, bridge, overlay, veth, VLAN/VXLAN, tunnel
            interfaces and for loop/ram/optical/device-mapper disks.
        """
        if kind is ResourceKind.DISK:
            return not name.startswith(self._disk_deny_prefixes)
        if name in self._network_deny_exact:
            return False
        return not name.startswith(self._network_deny_prefixes)

    def is_physical(self, name: str) -> bool:
        """Whether a network interface name follows physical NIC conventions."""
        if not self.is_countable(name, ResourceKind.NETWORK):
            return False
        return name.startswith(self._physical_prefixes) or bool(_PCI_SLOT_NAME.match(name))
