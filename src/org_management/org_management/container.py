from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .authorization.service import ActorService
from .dashboard.service import DashboardService
from .database.connection import DBConfig, DatabaseConnection
from .departments.mysql_department_repository import MySQLDepartmentRepository
from .departments.repository import MembershipRepository
from .departments.service import DepartmentService
from .programs.mysql_program_repository import MySQLProgramRepository
from .programs.repository import ProgramRepository
from .programs.service import ProgramService
from .programs.workflow import ProgramWorkflow
from .units.mysql_unit_repository import MySQLUnitRepository
from .units.repository import UnitRepository
from .units.service import UnitService
from .users.mysql_role_repository import MySQLRoleRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.role_repository import RoleRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    roles_repo: RoleRepository
    units_repo: UnitRepository
    memberships_repo: MembershipRepository
    programs_repo: ProgramRepository

    actor_service: ActorService
    auth_service: AuthService
    user_service: UserService
    unit_service: UnitService
    department_service: DepartmentService
    program_workflow: ProgramWorkflow
    program_service: ProgramService
    dashboard_service: DashboardService


def wire_container(
    *,
    users_repo: UserRepository,
    roles_repo: RoleRepository,
    units_repo: UnitRepository,
    memberships_repo: MembershipRepository,
    programs_repo: ProgramRepository,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build the services on top of any set of repositories (MySQL or in-memory)."""
    workflow = ProgramWorkflow(programs_repo)
    return Container(
        conn=conn,
        users_repo=users_repo,
        roles_repo=roles_repo,
        units_repo=units_repo,
        memberships_repo=memberships_repo,
        programs_repo=programs_repo,
        actor_service=ActorService(units_repo, memberships_repo),
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo, roles_repo),
        unit_service=UnitService(units_repo, users_repo, memberships_repo),
        department_service=DepartmentService(memberships_repo),
        program_workflow=workflow,
        program_service=ProgramService(programs_repo, workflow, units_repo, users_repo),
        dashboard_service=DashboardService(users_repo, units_repo, memberships_repo, programs_repo),
    )


def build_container(*, db_config: dict) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire_container(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        roles_repo=MySQLRoleRepository(conn),
        units_repo=MySQLUnitRepository(conn),
        memberships_repo=MySQLDepartmentRepository(conn),
        programs_repo=MySQLProgramRepository(conn),
    )
