"""
Unit tests for ProjectRepository.

Covers create (colour split into channels, customer name lookup), update,
soft delete and the error wrapping shared by all repositories.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import date

from sqlalchemy.exc import IntegrityError

from src.database.exceptions import (
    DatabaseConstraintError,
    DatabaseOperationError,
    EntityNotFoundError,
)
from src.database.repositories.projects import ProjectRepository
from src.models import Project, ProjectCreate, UNKNOWN_CLIENT


@pytest.fixture
def project_repository(mock_database):
    """Create ProjectRepository with mocked database."""
    db, session = mock_database
    return ProjectRepository(db), session


@pytest.fixture
def project_input():
    return ProjectCreate(
        name="Bridge Deck",
        marking="BRD",
        client_id="c-1",
        marking_color="#FF5733",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 3, 1),
    )


def _name_result(name):
    result = MagicMock()
    result.scalar_one_or_none.return_value = name
    return result


# ============================================================
# CREATE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_create_project_success(project_repository, project_input):
    """Test creating a project splits the colour and joins the customer name."""
    repo, session = project_repository
    session.execute.return_value = _name_result("Acme Builders")

    result = await repo.create(project_input)

    session.add.assert_called_once()
    session.flush.assert_called_once()

    added = session.add.call_args[0][0]
    assert added.name == "Bridge Deck"
    assert (added.color_red, added.color_green, added.color_blue) == (255, 87, 51)
    assert added.client_id == "c-1"

    assert result.id == added.project_id
    assert result.marking_color == "#ff5733"
    assert result.client == "Acme Builders"


@pytest.mark.asyncio
async def test_create_project_without_client(project_repository, project_input):
    """No client: no lookup and the sentinel name."""
    repo, session = project_repository

    result = await repo.create(project_input.model_copy(update={"client_id": None}))

    session.execute.assert_not_called()
    assert result.client == UNKNOWN_CLIENT


@pytest.mark.asyncio
async def test_create_project_error_handling(project_repository, project_input):
    """Driver errors surface as DatabaseOperationError naming the table."""
    repo, session = project_repository
    session.flush.side_effect = Exception("Database error")

    with pytest.raises(DatabaseOperationError, match="Failed to insert project") as exc_info:
        await repo.create(project_input)

    assert exc_info.value.table == "project"
    assert exc_info.value.operation == "insert"


@pytest.mark.asyncio
async def test_create_project_constraint_violation(project_repository, project_input):
    repo, session = project_repository
    session.flush.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

    with pytest.raises(DatabaseConstraintError):
        await repo.create(project_input)


# ============================================================
# UPDATE / DELETE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_update_project_success(project_repository):
    repo, session = project_repository
    session.execute.return_value = MagicMock(rowcount=1)
    project = Project(id="p-1", name="Renamed", marking_color="#000000")

    result = await repo.update(project)

    assert result is project
    session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_missing_project(project_repository):
    repo, session = project_repository
    session.execute.return_value = MagicMock(rowcount=0)

    with pytest.raises(EntityNotFoundError):
        await repo.update(Project(id="ghost", name="Nobody"))


@pytest.mark.asyncio
async def test_soft_delete_project(project_repository):
    repo, session = project_repository
    session.execute.return_value = MagicMock(rowcount=1)

    await repo.soft_delete("p-1")

    session.execute.assert_awaited_once()


# ============================================================
# QUERY TESTS
# ============================================================

@pytest.mark.asyncio
async def test_get_by_id_not_found(project_repository):
    repo, session = project_repository
    result = MagicMock()
    result.first.return_value = None
    session.execute.return_value = result

    assert await repo.get_by_id("ghost") is None
