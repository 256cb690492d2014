"""
Integration tests for services/notifications/candidates.py

explicit ∪ scoped (global permission holders ∪ project role holders), active only, minus the actor.
"""

from app.services.notifications.candidates import resolve_candidates

from tests.fixtures.db import DbTestCase
from tests.fixtures.directory_factory import (
    OTHER_TENANT,
    TENANT,
    add_member,
    assign_role,
    create_project,
    create_role,
    create_user,
)


class TestResolveCandidates(DbTestCase):
    def _ids(self, users):
        return {u.id for u in users}

    def test_no_inputs_returns_empty(self):
        create_user(self.db)
        self.assertEqual(resolve_candidates(self.db, TENANT), [])

    def test_explicit_users(self):
        a = create_user(self.db)
        b = create_user(self.db)
        create_user(self.db)

        result = resolve_candidates(self.db, TENANT, specific_user_ids=[a.id, b.id, a.id])

        self.assertEqual(self._ids(result), {a.id, b.id})
        self.assertEqual([u.id for u in result], sorted([a.id, b.id]))

    def test_inactive_users_are_dropped(self):
        active = create_user(self.db)
        inactive = create_user(self.db, status="INACTIVE")

        result = resolve_candidates(self.db, TENANT, specific_user_ids=[active.id, inactive.id])

        self.assertEqual(self._ids(result), {active.id})

    def test_actor_is_excluded(self):
        actor = create_user(self.db)
        other = create_user(self.db)

        result = resolve_candidates(
            self.db, TENANT, actor_user_id=actor.id, specific_user_ids=[actor.id, other.id]
        )

        self.assertEqual(self._ids(result), {other.id})

    def test_global_permission_holders_in_tenant(self):
        role = create_role(self.db, "Buyer", ["supplies.view"])
        holder = create_user(self.db)
        assign_role(self.db, holder, role)
        create_user(self.db)

        foreign_role = create_role(self.db, "Buyer", ["supplies.view"], tenant_id=OTHER_TENANT)
        foreign = create_user(self.db, tenant_id=OTHER_TENANT)
        assign_role(self.db, foreign, foreign_role)

        result = resolve_candidates(self.db, TENANT, permission_codes=["supplies.view"])

        self.assertEqual(self._ids(result), {holder.id})

    def test_project_role_grants_permission(self):
        project = create_project(self.db)
        site_role = create_role(self.db, "Site lead", ["supplies.edit"])
        member = create_user(self.db)
        add_member(self.db, project, member, site_role)
        plain_member = create_user(self.db)
        add_member(self.db, project, plain_member)

        result = resolve_candidates(
            self.db, TENANT, project_id=project.id, permission_codes=["supplies.view", "supplies.edit"]
        )

        self.assertEqual(self._ids(result), {member.id})

    def test_project_members_without_codes_include_privileged(self):
        project = create_project(self.db)
        m1 = create_user(self.db)
        m2 = create_user(self.db)
        add_member(self.db, project, m1)
        add_member(self.db, project, m2)
        admin = create_user(self.db)
        assign_role(self.db, admin, create_role(self.db, "ADMIN"))
        viewer = create_user(self.db)
        assign_role(self.db, viewer, create_role(self.db, "Director", ["projects_general.view"]))
        create_user(self.db)

        result = resolve_candidates(self.db, TENANT, project_id=project.id, include_project_members=True)

        self.assertEqual(self._ids(result), {m1.id, m2.id, admin.id, viewer.id})

    def test_project_members_with_codes_narrow_to_members(self):
        project = create_project(self.db)
        role = create_role(self.db, "Buyer", ["supplies.view"])
        member_holder = create_user(self.db)
        assign_role(self.db, member_holder, role)
        add_member(self.db, project, member_holder)
        outside_holder = create_user(self.db)
        assign_role(self.db, outside_holder, role)
        member_without = create_user(self.db)
        add_member(self.db, project, member_without)
        admin = create_user(self.db)
        assign_role(self.db, admin, create_role(self.db, "SUPER_ADMIN"))

        result = resolve_candidates(
            self.db,
            TENANT,
            project_id=project.id,
            permission_codes=["supplies.view"],
            include_project_members=True,
        )

        self.assertEqual(self._ids(result), {member_holder.id, admin.id})

    def test_explicit_and_scoped_union(self):
        role = create_role(self.db, "Buyer", ["supplies.view"])
        holder = create_user(self.db)
        assign_role(self.db, holder, role)
        explicit = create_user(self.db)

        result = resolve_candidates(
            self.db, TENANT, specific_user_ids=[explicit.id], permission_codes=["supplies.view"]
        )

        self.assertEqual(self._ids(result), {holder.id, explicit.id})
