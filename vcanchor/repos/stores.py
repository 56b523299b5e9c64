"""Request-scoped bundle of repositories.

With DATABASE_URL configured each request gets Pg repos bound to one
session (one transaction); otherwise every request shares the process-wide
in-memory repos.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass

from vcanchor.db.engine import async_session_factory
from vcanchor.repos.credential_repo import CredentialRepo, InMemoryCredentialRepo
from vcanchor.repos.identity_repo import IdentityRepo, InMemoryIdentityRepo
from vcanchor.repos.pg_credential_repo import PgCredentialRepo
from vcanchor.repos.pg_identity_repo import PgIdentityRepo
from vcanchor.repos.pg_quiz_repo import PgQuizRepo
from vcanchor.repos.quiz_repo import InMemoryQuizRepo, QuizRepo
from vcanchor.services.errors import AnchoringIndeterminate


@dataclass(frozen=True, slots=True)
class Stores:
    credentials: CredentialRepo
    identities: IdentityRepo
    quizzes: QuizRepo


memory_credentials = InMemoryCredentialRepo()
memory_identities = InMemoryIdentityRepo()
memory_quizzes = InMemoryQuizRepo()

memory_stores = Stores(
    credentials=memory_credentials,
    identities=memory_identities,
    quizzes=memory_quizzes,
)


async def get_stores() -> AsyncGenerator[Stores, None]:
    """FastAPI dependency yielding the repositories for one request.

    Commits on success, rolls back on exception.  AnchoringIndeterminate is
    the exception to the rollback: the pending anchor recorded before it was
    raised must survive so the transaction can be reconciled later.
    """
    if async_session_factory is None:
        yield memory_stores
        return

    async with async_session_factory() as session:
        try:
            yield Stores(
                credentials=PgCredentialRepo(session),
                identities=PgIdentityRepo(session),
                quizzes=PgQuizRepo(session),
            )
            await session.commit()
        except AnchoringIndeterminate:
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise
