"""One handle on every repository, built per request.

``Repos.postgres(session)`` wraps a request-scoped AsyncSession.  When no
database is configured the process-wide ``IN_MEMORY`` bundle is used
instead; tests reset it between cases via ``reset_in_memory()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from portal.repos.contract_repo import ContractRepo, InMemoryContractRepo
from portal.repos.invitation_repo import InMemoryInvitationRepo, InvitationRepo
from portal.repos.org_repo import InMemoryOrgRepo, OrgRepo
from portal.repos.pg_contract_repo import PgContractRepo
from portal.repos.pg_invitation_repo import PgInvitationRepo
from portal.repos.pg_org_repo import PgOrgRepo
from portal.repos.pg_project_repo import PgProjectRepo
from portal.repos.pg_user_repo import PgUserRepo
from portal.repos.project_repo import InMemoryProjectRepo, ProjectRepo
from portal.repos.user_repo import InMemoryUserRepo, UserRepo


@dataclass(frozen=True, slots=True)
class Repos:
    orgs: OrgRepo
    projects: ProjectRepo
    invitations: InvitationRepo
    users: UserRepo
    contracts: ContractRepo

    @staticmethod
    def in_memory() -> Repos:
        return Repos(
            orgs=InMemoryOrgRepo(),
            projects=InMemoryProjectRepo(),
            invitations=InMemoryInvitationRepo(),
            users=InMemoryUserRepo(),
            contracts=InMemoryContractRepo(),
        )

    @staticmethod
    def postgres(session: AsyncSession) -> Repos:
        return Repos(
            orgs=PgOrgRepo(session),
            projects=PgProjectRepo(session),
            invitations=PgInvitationRepo(session),
            users=PgUserRepo(session),
            contracts=PgContractRepo(session),
        )


IN_MEMORY = Repos.in_memory()


def reset_in_memory() -> None:
    for repo in (
        IN_MEMORY.orgs,
        IN_MEMORY.projects,
        IN_MEMORY.invitations,
        IN_MEMORY.users,
        IN_MEMORY.contracts,
    ):
        repo.clear()  # type: ignore[attr-defined]
