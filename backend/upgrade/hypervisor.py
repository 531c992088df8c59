"""
Hypervisor families and the 4.5.0 system VM template published for each.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class HypervisorType(Enum):
    """Hypervisor families that ship a system VM template"""
    XENSERVER = 'XenServer'
    VMWARE = 'VMware'
    KVM = 'KVM'
    LXC = 'LXC'
    HYPERV = 'Hyperv'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional['HypervisorType']:
        """
        Map a raw hypervisor_type column value to a family, ignoring case.

        Returns None for NULL and for families without system VM templates
        (BareMetal, Simulator, Ovm, ...).
        """
        if not value:
            return None
        needle = value.strip().lower()
        for member in cls:
            if member.value.lower() == needle:
                return member
        return None


@dataclass(frozen=True)
class SystemTemplate:
    name: str
    url: str
    checksum: str
    router_config_key: str  # configuration row holding the router template name


# Iteration order is the order hypervisors are processed in
SYSTEM_TEMPLATES_450 = {
    HypervisorType.XENSERVER: SystemTemplate(
        name='systemvm-xenserver-4.5',
        url='http://download.cloud.com/templates/4.5/systemvm64template-4.5-xen.vhd.bz2',
        checksum='2b15ab4401c2d655264732d3fc600241',
        router_config_key='router.template.xen',
    ),
    HypervisorType.VMWARE: SystemTemplate(
        name='systemvm-vmware-4.5',
        url='http://download.cloud.com/templates/4.5/systemvm64template-4.5-vmware.ova',
        checksum='3106a79a4ce66cd7f6a7c50e93f2db57',
        router_config_key='router.template.vmware',
    ),
    HypervisorType.KVM: SystemTemplate(
        name='systemvm-kvm-4.5',
        url='http://download.cloud.com/templates/4.5/systemvm64template-4.5-kvm.qcow2.bz2',
        checksum='aa9f501fecd3de1daeb9e2f357f6f002',
        router_config_key='router.template.kvm',
    ),
    # LXC reuses the KVM image
    HypervisorType.LXC: SystemTemplate(
        name='systemvm-lxc-4.5',
        url='http://download.cloud.com/templates/4.5/systemvm64template-4.5-kvm.qcow2.bz2',
        checksum='aa9f501fecd3de1daeb9e2f357f6f002',
        router_config_key='router.template.lxc',
    ),
    HypervisorType.HYPERV: SystemTemplate(
        name='systemvm-hyperv-4.5',
        url='http://download.cloud.com/templates/4.5/systemvm64template-4.5-hyperv.vhd.zip',
        checksum='70bd30ea02ee9ed67d2c6b85c179cee9',
        router_config_key='router.template.hyperv',
    ),
}
