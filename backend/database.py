"""
SQLAlchemy models for the platform tables touched by the 4.4.2 -> 4.5.0 upgrade.

Only the columns read or written by the upgrade are mapped. The tables are
owned by the platform schema; the upgrade never creates or deletes rows here.
"""

from sqlalchemy import (
    Column, Integer, BigInteger, String, DateTime, ForeignKey, ForeignKeyConstraint
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# BigInteger ids render as INTEGER on SQLite so autoincrement keeps working
Id = BigInteger().with_variant(Integer(), "sqlite")


class Cluster(Base):
    """Compute cluster; hypervisor_type tells which hypervisor family is in use"""
    __tablename__ = "cluster"

    id = Column(Id, primary_key=True, autoincrement=True)
    name = Column(String(255))
    hypervisor_type = Column(String(32))
    removed = Column(DateTime, nullable=True)

    def __repr__(self):
        return f'<Cluster {self.name} ({self.hypervisor_type})>'


class VmTemplate(Base):
    __tablename__ = "vm_template"

    id = Column(Id, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(String(32))  # USER, SYSTEM, BUILTIN, ...
    hypervisor_type = Column(String(32))
    url = Column(String(255))
    checksum = Column(String(255))
    removed = Column(DateTime, nullable=True)

    def __repr__(self):
        return f'<VmTemplate {self.id} {self.name}>'


class VmInstance(Base):
    __tablename__ = "vm_instance"

    id = Column(Id, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)  # User, DomainRouter, ConsoleProxy, SecondaryStorageVm, ...
    hypervisor_type = Column(String(32))
    vm_template_id = Column(BigInteger, ForeignKey('vm_template.id'), nullable=True)
    removed = Column(DateTime, nullable=True)

    def __repr__(self):
        return f'<VmInstance {self.name} ({self.type})>'


class Configuration(Base):
    """Global configuration key/value pairs (router.template.*, ...)"""
    __tablename__ = "configuration"

    name = Column(String(255), primary_key=True)
    category = Column(String(255), nullable=False, default='Advanced')
    value = Column(String(4095))


class ServiceOffering(Base):
    """
    Compute offering. The lowest id row of each system vm_type is the
    platform-managed default; later rows are user defined.
    """
    __tablename__ = "service_offering"

    id = Column(Id, primary_key=True, autoincrement=True)
    name = Column(String(255))
    vm_type = Column(String(32), nullable=True)  # domainrouter, internalloadbalancervm, ...
    ram_size = Column(Integer)

    def __repr__(self):
        return f'<ServiceOffering {self.id} {self.vm_type} {self.ram_size}MB>'


class StoragePool(Base):
    __tablename__ = "storage_pool"

    id = Column(Id, primary_key=True, autoincrement=True)
    uuid = Column(String(255), unique=True)
    name = Column(String(255))
    removed = Column(DateTime, nullable=True)


class AsyncJob(Base):
    __tablename__ = "async_job"

    id = Column(Id, primary_key=True, autoincrement=True)


class AsyncJobJoinMap(Base):
    """
    Join map between async jobs, as left by 4.4.x schemas: join_job_id carries
    a duplicated foreign key that the 4.5.0 upgrade removes.
    """
    __tablename__ = "async_job_join_map"
    __table_args__ = (
        ForeignKeyConstraint(['job_id'], ['async_job.id'], name='fk_async_job_join_map__job_id',
                             ondelete='CASCADE'),
        ForeignKeyConstraint(['join_job_id'], ['async_job.id'], name='fk_async_job_join_map__join_job_id'),
    )

    id = Column(Id, primary_key=True, autoincrement=True)
    job_id = Column(BigInteger, nullable=False)
    join_job_id = Column(BigInteger, nullable=False)
