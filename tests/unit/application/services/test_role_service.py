"""Unit tests for RoleService."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from shelfguard.application.services.role_service import (
    DEFAULT_ROLE_NOT_DELETABLE,
    NO_MIGRATION_LABEL,
    ROLE_NOT_DELETABLE,
    ROLE_NOT_EDITABLE,
    RoleService,
)
from shelfguard.core.config import Settings
from shelfguard.domain.entities import NO_MIGRATION, MigrateTo
from shelfguard.domain.exceptions import (
    NotFoundError,
    PermissionsError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from shelfguard.domain.schemas import RoleFields
from tests.conftest import MANAGER_ID, OUTSIDER_ID, USER_A, USER_B


@pytest.fixture
def role_service(db_session, registry, settings):
    return RoleService(db_session, registry, settings)


class TestCreateRole:
    """Test suite for RoleService.create_role."""

    @pytest.mark.asyncio
    async def test_create_role_commits(self, role_service, role_repo, db_session, seeded_roles):
        role = await role_service.create_role(
            MANAGER_ID,
            RoleFields(display_name="Reviewer", permissions=frozenset({"page-view"})),
        )

        await db_session.rollback()
        assert await role_repo.get_by_id(role.id) == role

    @pytest.mark.asyncio
    async def test_create_role_from_payload(self, role_service, seeded_roles):
        role = await role_service.create_role(
            MANAGER_ID,
            {"display_name": "Reviewer", "description": "Reads drafts", "permissions": {"page-view": "on"}},
        )

        assert role.display_name == "Reviewer"
        assert role.description == "Reads drafts"
        assert role.permissions == frozenset({"page-view"})

    @pytest.mark.asyncio
    async def test_create_role_requires_manage_permission(self, role_service, role_repo, seeded_roles):
        with pytest.raises(UnauthorizedError):
            await role_service.create_role(USER_A, RoleFields(display_name="Reviewer"))

        assert await role_repo.count() == 3

    @pytest.mark.asyncio
    async def test_create_role_invalid(self, role_service, role_repo, seeded_roles):
        with pytest.raises(ValidationError) as exc_info:
            await role_service.create_role(MANAGER_ID, {"display_name": "ab"})

        assert exc_info.value.fields == {"display_name"}
        assert await role_repo.count() == 3


class TestEditAndUpdateRole:
    """Test suite for editing and updating roles."""

    @pytest.mark.asyncio
    async def test_edit_role(self, role_service, seeded_roles):
        role = await role_service.edit_role(MANAGER_ID, seeded_roles.editor.id)

        assert role == seeded_roles.editor

    @pytest.mark.asyncio
    async def test_edit_hidden_role(self, role_service, seeded_roles):
        with pytest.raises(PermissionsError) as exc_info:
            await role_service.edit_role(MANAGER_ID, seeded_roles.admin.id)

        assert exc_info.value.message == ROLE_NOT_EDITABLE == "This role cannot be edited"

    @pytest.mark.asyncio
    async def test_edit_missing_role(self, role_service, seeded_roles):
        with pytest.raises(NotFoundError):
            await role_service.edit_role(MANAGER_ID, 999)

    @pytest.mark.asyncio
    async def test_edit_requires_manage_permission(self, role_service, seeded_roles):
        with pytest.raises(UnauthorizedError):
            await role_service.edit_role(USER_A, seeded_roles.editor.id)

    @pytest.mark.asyncio
    async def test_update_role(self, role_service, role_repo, db_session, seeded_roles):
        updated = await role_service.update_role(
            MANAGER_ID,
            seeded_roles.editor.id,
            RoleFields(display_name="Page Editor", permissions=frozenset({"page-edit", "page-view"})),
        )

        await db_session.rollback()
        assert await role_repo.get_by_id(seeded_roles.editor.id) == updated
        assert updated.display_name == "Page Editor"

    @pytest.mark.asyncio
    async def test_update_hidden_role(self, role_service, role_repo, seeded_roles):
        with pytest.raises(PermissionsError) as exc_info:
            await role_service.update_role(
                MANAGER_ID, seeded_roles.admin.id, RoleFields(display_name="Admin")
            )

        assert exc_info.value.message == "This role cannot be edited"
        assert await role_repo.get_by_id(seeded_roles.admin.id) == seeded_roles.admin

    @pytest.mark.asyncio
    async def test_update_missing_role(self, role_service, seeded_roles):
        with pytest.raises(NotFoundError):
            await role_service.update_role(MANAGER_ID, 999, RoleFields(display_name="Nobody"))

    @pytest.mark.asyncio
    async def test_update_requires_manage_permission(self, role_service, role_repo, seeded_roles):
        with pytest.raises(UnauthorizedError):
            await role_service.update_role(
                USER_A, seeded_roles.editor.id, RoleFields(display_name="Hijacked")
            )

        assert (await role_repo.get_by_id(seeded_roles.editor.id)).display_name == "Editor"


class TestListing:
    """Test suite for read operations."""

    @pytest.mark.asyncio
    async def test_list_roles(self, role_service, seeded_roles):
        roles = await role_service.list_roles(MANAGER_ID)

        assert [r.display_name for r in roles] == ["Admin", "Editor", "Viewer"]

    @pytest.mark.asyncio
    async def test_list_roles_requires_manage_permission(self, role_service, seeded_roles):
        with pytest.raises(UnauthorizedError):
            await role_service.list_roles(OUTSIDER_ID)

    @pytest.mark.asyncio
    async def test_get_role(self, role_service, seeded_roles):
        assert await role_service.get_role(MANAGER_ID, seeded_roles.viewer.id) == seeded_roles.viewer

        with pytest.raises(NotFoundError):
            await role_service.get_role(MANAGER_ID, 999)

    @pytest.mark.asyncio
    async def test_list_migration_candidates(self, role_service, seeded_roles):
        options = await role_service.list_migration_candidates(MANAGER_ID, seeded_roles.editor.id)

        assert options[0].target == NO_MIGRATION
        assert options[0].label == NO_MIGRATION_LABEL == "Don't migrate users"
        assert [(o.target, o.label) for o in options[1:]] == [
            (MigrateTo(seeded_roles.admin.id), "Admin"),
            (MigrateTo(seeded_roles.viewer.id), "Viewer"),
        ]

    @pytest.mark.asyncio
    async def test_list_migration_candidates_missing_role(self, role_service, seeded_roles):
        with pytest.raises(NotFoundError):
            await role_service.list_migration_candidates(MANAGER_ID, 999)

    @pytest.mark.asyncio
    async def test_placeholder_is_never_persisted(self, role_service, role_repo, seeded_roles):
        await role_service.list_migration_candidates(MANAGER_ID, seeded_roles.editor.id)

        assert await role_repo.count() == 3
        assert await role_repo.get_by_display_name(NO_MIGRATION_LABEL) is None


class TestDeleteRole:
    """Test suite for RoleService.delete_role."""

    @pytest.mark.asyncio
    async def test_delete_hidden_role(self, role_service, role_repo, seeded_roles):
        with pytest.raises(PermissionsError) as exc_info:
            await role_service.delete_role(MANAGER_ID, seeded_roles.admin.id)

        assert exc_info.value.message == ROLE_NOT_DELETABLE == "This role cannot be deleted"
        assert await role_repo.get_by_id(seeded_roles.admin.id) == seeded_roles.admin
        assert await role_repo.get_user_ids(seeded_roles.admin.id) == [MANAGER_ID]

    @pytest.mark.asyncio
    async def test_delete_default_role(self, role_service, role_repo, seeded_roles):
        with pytest.raises(PermissionsError) as exc_info:
            await role_service.delete_role(MANAGER_ID, seeded_roles.viewer.id)

        assert exc_info.value.message == DEFAULT_ROLE_NOT_DELETABLE
        assert await role_repo.get_by_id(seeded_roles.viewer.id) is not None

    @pytest.mark.asyncio
    async def test_delete_missing_role(self, role_service, seeded_roles):
        with pytest.raises(NotFoundError):
            await role_service.delete_role(MANAGER_ID, 999)

    @pytest.mark.asyncio
    async def test_delete_requires_manage_permission(self, role_service, role_repo, seeded_roles):
        with pytest.raises(UnauthorizedError):
            await role_service.delete_role(USER_A, seeded_roles.editor.id)

        assert await role_repo.get_by_id(seeded_roles.editor.id) is not None

    @pytest.mark.asyncio
    async def test_delete_with_migration(self, role_service, role_repo, seeded_roles):
        await role_service.delete_role(
            MANAGER_ID, seeded_roles.editor.id, MigrateTo(seeded_roles.viewer.id)
        )

        assert await role_repo.get_by_id(seeded_roles.editor.id) is None
        assert await role_repo.get_user_ids(seeded_roles.viewer.id) == [USER_A, USER_B]

    @pytest.mark.asyncio
    async def test_delete_with_form_value_migration(self, role_service, role_repo, seeded_roles):
        await role_service.delete_role(
            MANAGER_ID, seeded_roles.editor.id, str(seeded_roles.viewer.id)
        )

        assert await role_repo.get_user_ids(seeded_roles.viewer.id) == [USER_A, USER_B]

    @pytest.mark.asyncio
    async def test_delete_with_missing_migration_target(self, role_service, role_repo, seeded_roles):
        with pytest.raises(NotFoundError):
            await role_service.delete_role(MANAGER_ID, seeded_roles.editor.id, 999)

        assert await role_repo.get_by_id(seeded_roles.editor.id) is not None
        assert await role_repo.get_user_ids(seeded_roles.editor.id) == [USER_A, USER_B]

    @pytest.mark.asyncio
    async def test_delete_migrating_to_itself_migrates_nobody(
        self, role_service, role_repo, seeded_roles
    ):
        await role_service.delete_role(MANAGER_ID, seeded_roles.editor.id, seeded_roles.editor.id)

        assert await role_repo.get_by_id(seeded_roles.editor.id) is None
        assert await role_repo.get_role_ids_for_user(USER_A) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("migrate_to", [None, "", NO_MIGRATION])
    async def test_delete_without_migration_allows_empty(
        self, role_service, role_repo, seeded_roles, migrate_to
    ):
        await role_service.delete_role(MANAGER_ID, seeded_roles.editor.id, migrate_to)

        assert await role_repo.get_by_id(seeded_roles.editor.id) is None
        assert await role_repo.get_role_ids_for_user(USER_A) == []
        assert await role_repo.get_role_ids_for_user(USER_B) == []

    @pytest.mark.asyncio
    async def test_delete_without_migration_assigns_default(
        self, db_session, registry, role_repo, seeded_roles
    ):
        service = RoleService(
            db_session,
            registry,
            Settings(_env_file=None, orphaned_user_policy="assign_default"),
        )
        await role_repo.add_user(seeded_roles.admin.id, USER_B)
        await db_session.commit()

        await service.delete_role(MANAGER_ID, seeded_roles.editor.id)

        assert await role_repo.get_role_ids_for_user(USER_A) == [seeded_roles.viewer.id]
        # USER_B still holds Admin, so the default role is not added
        assert await role_repo.get_role_ids_for_user(USER_B) == [seeded_roles.admin.id]

    @pytest.mark.asyncio
    async def test_delete_storage_failure_rolls_back(self, role_service, role_repo, seeded_roles):
        failure = OperationalError("DELETE FROM roles", {}, Exception("disk I/O error"))

        with patch.object(role_service.role_repo, "delete", AsyncMock(side_effect=failure)):
            with pytest.raises(StorageError) as exc_info:
                await role_service.delete_role(
                    MANAGER_ID, seeded_roles.editor.id, seeded_roles.viewer.id
                )

        assert exc_info.value.__cause__ is failure
        assert await role_repo.get_by_id(seeded_roles.editor.id) is not None
        assert await role_repo.get_user_ids(seeded_roles.viewer.id) == []
        assert await role_repo.get_user_ids(seeded_roles.editor.id) == [USER_A, USER_B]


class TestAssignDefaultRole:
    """Test suite for RoleService.assign_default_role."""

    @pytest.mark.asyncio
    async def test_assign_default_role(self, role_service, role_repo, seeded_roles):
        role = await role_service.assign_default_role(OUTSIDER_ID)

        assert role == seeded_roles.viewer
        assert await role_repo.get_role_ids_for_user(OUTSIDER_ID) == [seeded_roles.viewer.id]

    @pytest.mark.asyncio
    async def test_assign_default_role_is_idempotent(self, role_service, role_repo, seeded_roles):
        await role_service.assign_default_role(OUTSIDER_ID)
        await role_service.assign_default_role(OUTSIDER_ID)

        assert await role_repo.get_role_ids_for_user(OUTSIDER_ID) == [seeded_roles.viewer.id]

    @pytest.mark.asyncio
    async def test_assign_default_role_without_default(self, role_service, role_repo):
        assert await role_service.assign_default_role(OUTSIDER_ID) is None
        assert await role_repo.get_role_ids_for_user(OUTSIDER_ID) == []


class TestUntrustedIds:
    """Test suite for ids that cannot name a stored role."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("migrate_to", ["²", "７", "seven"])
    async def test_delete_with_non_numeric_target(
        self, role_service, role_repo, seeded_roles, migrate_to
    ):
        with pytest.raises(ValidationError) as exc_info:
            await role_service.delete_role(MANAGER_ID, seeded_roles.editor.id, migrate_to)

        assert exc_info.value.fields == {"migrate_role_id"}
        assert await role_repo.get_by_id(seeded_roles.editor.id) is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("migrate_to", ["9" * 30, 2**63, 0])
    async def test_delete_with_out_of_range_target(
        self, role_service, role_repo, seeded_roles, migrate_to
    ):
        with pytest.raises(NotFoundError):
            await role_service.delete_role(MANAGER_ID, seeded_roles.editor.id, migrate_to)

        assert await role_repo.get_user_ids(seeded_roles.editor.id) == [USER_A, USER_B]

    @pytest.mark.asyncio
    async def test_out_of_range_role_id(self, role_service, seeded_roles):
        huge = 10**30

        with pytest.raises(NotFoundError):
            await role_service.get_role(MANAGER_ID, huge)
        with pytest.raises(NotFoundError):
            await role_service.edit_role(MANAGER_ID, huge)
        with pytest.raises(NotFoundError):
            await role_service.update_role(MANAGER_ID, huge, {"display_name": "Nobody"})
        with pytest.raises(NotFoundError):
            await role_service.list_migration_candidates(MANAGER_ID, huge)
        with pytest.raises(NotFoundError):
            await role_service.delete_role(MANAGER_ID, huge)


class TestDefaultRoleUpdates:
    """Test suite for keeping the default role across updates."""

    @pytest.mark.asyncio
    async def test_rename_keeps_default_role(self, role_service, seeded_roles):
        updated = await role_service.update_role(
            MANAGER_ID,
            seeded_roles.viewer.id,
            {"display_name": "Readers", "permissions": ["page-view"]},
        )

        assert updated.system_default is True
        with pytest.raises(PermissionsError) as exc_info:
            await role_service.delete_role(MANAGER_ID, seeded_roles.viewer.id)
        assert exc_info.value.message == DEFAULT_ROLE_NOT_DELETABLE
        assert await role_service.assign_default_role(OUTSIDER_ID) == updated


class TestRoleAssignment:
    """Test suite for assigning and removing roles."""

    @pytest.mark.asyncio
    async def test_assign_role(self, role_service, role_repo, db_session, seeded_roles):
        assert await role_service.assign_role(MANAGER_ID, seeded_roles.viewer.id, USER_A) is True

        await db_session.rollback()
        assert await role_repo.get_role_ids_for_user(USER_A) == sorted(
            [seeded_roles.viewer.id, seeded_roles.editor.id]
        )
        assert await role_service.gate.check(USER_A, "page-view") is True

    @pytest.mark.asyncio
    async def test_assign_role_is_idempotent(self, role_service, seeded_roles):
        assert await role_service.assign_role(MANAGER_ID, seeded_roles.editor.id, USER_A) is False

    @pytest.mark.asyncio
    async def test_assign_hidden_role(self, role_service, seeded_roles):
        assert await role_service.assign_role(MANAGER_ID, seeded_roles.admin.id, OUTSIDER_ID) is True

        roles = await role_service.list_roles(OUTSIDER_ID)
        assert len(roles) == 3

    @pytest.mark.asyncio
    async def test_assign_missing_role(self, role_service, role_repo, seeded_roles):
        with pytest.raises(NotFoundError):
            await role_service.assign_role(MANAGER_ID, 999, USER_A)

        assert await role_repo.get_role_ids_for_user(USER_A) == [seeded_roles.editor.id]

    @pytest.mark.asyncio
    async def test_assign_requires_manage_permission(self, role_service, role_repo, seeded_roles):
        with pytest.raises(UnauthorizedError):
            await role_service.assign_role(USER_A, seeded_roles.admin.id, USER_A)

        assert await role_repo.get_user_ids(seeded_roles.admin.id) == [MANAGER_ID]

    @pytest.mark.asyncio
    async def test_remove_role(self, role_service, role_repo, db_session, seeded_roles):
        assert await role_service.remove_role(MANAGER_ID, seeded_roles.editor.id, USER_A) is True
        assert await role_service.remove_role(MANAGER_ID, seeded_roles.editor.id, USER_A) is False

        await db_session.rollback()
        assert await role_repo.get_user_ids(seeded_roles.editor.id) == [USER_B]

    @pytest.mark.asyncio
    async def test_remove_role_requires_manage_permission(self, role_service, role_repo, seeded_roles):
        with pytest.raises(UnauthorizedError):
            await role_service.remove_role(USER_B, seeded_roles.editor.id, USER_A)

        assert await role_repo.get_user_ids(seeded_roles.editor.id) == [USER_A, USER_B]

    @pytest.mark.asyncio
    async def test_remove_role_missing_role(self, role_service, seeded_roles):
        with pytest.raises(NotFoundError):
            await role_service.remove_role(MANAGER_ID, 999, USER_A)
