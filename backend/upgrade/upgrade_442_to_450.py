"""
Data migration from 4.4.2 to 4.5.0

CHANGES IN 4.5.0:
- System VMs move to the 4.5 system VM templates (one per hypervisor)
  - New template is marked SYSTEM, non-user VMs and router.template.* point at it
  - Hypervisors that are not in use only get the new download url/checksum
- Built-in domainrouter and internalloadbalancervm offerings get 256 MB RAM
  - Only the first (platform-created) offering of each type is touched
- Drop stale unique key id_2 from storage_pool
- Drop duplicated foreign key fk_async_job_join_map__join_job_id from async_job_join_map
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Set

from sqlalchemy import select, update, func
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from database import Cluster, Configuration, ServiceOffering, VmInstance, VmTemplate
from upgrade.base import DbUpgrade
from upgrade.db_upgrade_utils import drop_keys_if_exist
from upgrade.exceptions import MissingSystemTemplateError, ScriptNotFoundError, SqlExecutionError
from upgrade.hypervisor import HypervisorType, SYSTEM_TEMPLATES_450
from utils.scripts import find_script

cluster = Cluster.__table__
vm_template = VmTemplate.__table__
vm_instance = VmInstance.__table__
configuration = Configuration.__table__
service_offering = ServiceOffering.__table__

NEW_RAM_SIZE = 256  # MB

ScriptFinder = Callable[[str, str], Optional[str]]
KeyDropper = Callable[..., None]


class Upgrade442to450(DbUpgrade):

    def __init__(
        self,
        script_finder: ScriptFinder = find_script,
        key_dropper: KeyDropper = drop_keys_if_exist,
        logger: Optional[logging.Logger] = None,
        schema: Optional[str] = None,
    ):
        self.script_finder = script_finder
        self.key_dropper = key_dropper
        self.logger = logger or logging.getLogger(__name__)
        # Platform tables live in e.g. `cloud`; None uses the connection default
        self.schema = schema

    def get_upgradable_version_range(self) -> List[str]:
        return ["4.4.2", "4.5.0"]

    def get_upgraded_version(self) -> str:
        return "4.5.0"

    def supports_rolling_upgrade(self) -> bool:
        return False

    def get_prepare_scripts(self) -> List[Path]:
        return [self._find_script("db/schema-442to450.sql")]

    def get_cleanup_scripts(self) -> List[Path]:
        return [self._find_script("db/schema-442to450-cleanup.sql")]

    def perform_data_migration(self, conn: Connection) -> None:
        self.update_system_vm_templates(conn)
        self.drop_invalid_key_from_storage_pool(conn)
        self.drop_duplicated_foreign_key_from_async_job_table(conn)
        self.upgrade_memory_of_virtual_router_offering(conn)
        self.upgrade_memory_of_internal_lb_offering(conn)

    def _find_script(self, script: str) -> Path:
        found = self.script_finder("", script)
        if found is None:
            raise ScriptNotFoundError(f"Unable to find {script}")
        return Path(found)

    def _execute(self, conn: Connection, statement):
        if self.schema:
            return conn.execute(statement, execution_options={"schema_translate_map": {None: self.schema}})
        return conn.execute(statement)

    # -- system VM templates ------------------------------------------------

    def hypervisors_in_use(self, conn: Connection) -> Set[HypervisorType]:
        """Hypervisor families of all non-removed clusters; unknown types are ignored"""
        stmt = select(cluster.c.hypervisor_type).where(cluster.c.removed.is_(None)).distinct()
        try:
            raw_types = self._execute(conn, stmt).scalars().all()
        except SQLAlchemyError as e:
            raise SqlExecutionError("Error while listing hypervisors in use") from e

        in_use = set()
        for raw_type in raw_types:
            hypervisor = HypervisorType.from_string(raw_type)
            if hypervisor is not None:
                in_use.add(hypervisor)
        return in_use

    def update_system_vm_templates(self, conn: Connection) -> None:
        """
        Point system VMs at the 4.5 template of their hypervisor.

        Hypervisors are processed one at a time; a failure leaves the ones
        already processed updated and relies on the caller's rollback.

        Raises:
            MissingSystemTemplateError: A hypervisor in use has no 4.5 template
            SqlExecutionError: A statement failed
        """
        self.logger.debug("Updating System Vm template IDs")
        in_use = self.hypervisors_in_use(conn)

        for hypervisor, template in SYSTEM_TEMPLATES_450.items():
            self.logger.debug(f"Updating {hypervisor} System Vms")
            try:
                template_id = self._execute(
                    conn,
                    select(vm_template.c.id)
                    .where(vm_template.c.name == template.name, vm_template.c.removed.is_(None))
                    .order_by(vm_template.c.id.desc())
                    .limit(1)
                ).scalar()

                if template_id is not None:
                    self._adopt_template(conn, hypervisor, template_id, template.name, template.router_config_key)
                elif hypervisor in in_use:
                    raise MissingSystemTemplateError(
                        f"4.5.0 {hypervisor} SystemVm template not found. Cannot upgrade system Vms"
                    )
                else:
                    self.logger.warning(
                        f"4.5.0 {hypervisor} SystemVm template not found. "
                        f"{hypervisor} hypervisor is not used, so not failing upgrade"
                    )
                    self._refresh_latest_template_url(conn, hypervisor, template.url, template.checksum)
            except SQLAlchemyError as e:
                raise SqlExecutionError(f"Error while updating {hypervisor} systemVm template") from e

        self.logger.debug("Updating System Vm Template IDs Complete")

    def _adopt_template(self, conn, hypervisor, template_id, template_name, config_key):
        self._execute(
            conn,
            update(vm_template).where(vm_template.c.id == template_id).values(type='SYSTEM')
        )
        self._execute(
            conn,
            update(vm_instance)
            .where(vm_instance.c.type != 'User', vm_instance.c.hypervisor_type == str(hypervisor))
            .values(vm_template_id=template_id)
        )
        self._execute(
            conn,
            update(configuration).where(configuration.c.name == config_key).values(value=template_name)
        )

    def _refresh_latest_template_url(self, conn, hypervisor, url, checksum):
        latest_id = self._execute(
            conn,
            select(func.max(vm_template.c.id)).where(
                vm_template.c.hypervisor_type == str(hypervisor),
                vm_template.c.type == 'SYSTEM',
                vm_template.c.removed.is_(None),
            )
        ).scalar()
        if latest_id is None:
            self.logger.debug(f"No {hypervisor} SYSTEM template to refresh")
            return

        self._execute(
            conn,
            update(vm_template).where(vm_template.c.id == latest_id).values(url=url, checksum=checksum)
        )

    # -- service offerings --------------------------------------------------

    def upgrade_offering_ram_size(self, conn: Connection, vm_type: str, description: str) -> None:
        """
        Set ram_size of the first offering of vm_type to NEW_RAM_SIZE.

        "First" is the lowest id: the platform creates its offering before any
        user-defined one, and user offerings must stay untouched. A missing
        offering is not an error.
        """
        try:
            offering_id = self._execute(
                conn,
                select(service_offering.c.id)
                .where(service_offering.c.vm_type == vm_type)
                .order_by(service_offering.c.id.asc())
                .limit(1)
            ).scalar()

            if offering_id is None:
                self.logger.debug(f"No {vm_type} service offering found, nothing to upgrade")
            else:
                self._execute(
                    conn,
                    update(service_offering)
                    .where(service_offering.c.id == offering_id)
                    .values(ram_size=NEW_RAM_SIZE)
                )
        except SQLAlchemyError as e:
            raise SqlExecutionError(f"Unable to upgrade ram_size of service offering for {description}.") from e

        self.logger.debug(f"Done upgrading RAM for service offering of {description} to {NEW_RAM_SIZE}")

    def upgrade_memory_of_virtual_router_offering(self, conn: Connection) -> None:
        self.upgrade_offering_ram_size(conn, 'domainrouter', 'domain router')

    def upgrade_memory_of_internal_lb_offering(self, conn: Connection) -> None:
        self.upgrade_offering_ram_size(conn, 'internalloadbalancervm', 'internal loadbalancer vm')

    # -- stale keys ---------------------------------------------------------

    def drop_invalid_key_from_storage_pool(self, conn: Connection) -> None:
        self.logger.debug("Dropping id_2 key from storage_pool table")
        self.key_dropper(conn, 'storage_pool', ['id_2'], False, schema=self.schema)

    def drop_duplicated_foreign_key_from_async_job_table(self, conn: Connection) -> None:
        self.logger.debug("Dropping fk_async_job_join_map__join_job_id key from async_job_join_map table")
        self.key_dropper(conn, 'async_job_join_map', ['fk_async_job_join_map__join_job_id'], True,
                         schema=self.schema)
