"""
Unit tests for request and caller types.
"""

from mdb_adapter.core.types import SYSTEM_ADMIN, Caller, CrudRequest


class TestCrudRequest:
    def test_wire_names_are_translated(self):
        req = CrudRequest.from_dict(
            {
                "_id": "abc",
                "findOne": True,
                "allStatuses": True,
                "includeCount": "true",
                "startsWith": "a",
                "where": {"x": 1},
                "somethingElse": 1,
            }
        )

        assert req.id == "abc"
        assert req.find_one is True
        assert req.all_statuses is True
        assert req.wants_count is True
        assert req.starts_with == "a"
        assert req.where == {"x": 1}

    def test_request_passthrough(self):
        req = CrudRequest(limit=5)
        assert CrudRequest.from_dict(req) is req

    def test_wants_count(self):
        assert CrudRequest(include_count=True).wants_count
        assert not CrudRequest(include_count="false").wants_count
        assert not CrudRequest().wants_count

    def test_caller_coerced(self):
        req = CrudRequest.from_dict({"caller": {"_id": "u1", "name": "jeff"}})
        assert req.caller == Caller(id="u1", name="jeff")


class TestCaller:
    def test_from_dict_nested(self):
        caller = Caller.from_dict(
            {
                "id": "u1",
                "name": "jeff",
                "onBehalfOf": {"_id": "u2", "name": "ann"},
                "user": {"companyId": "c1"},
            }
        )

        assert caller.on_behalf_of == Caller(id="u2", name="ann")
        assert caller.company_id == "c1"

    def test_from_dict_none_and_instance(self):
        assert Caller.from_dict(None) is None
        assert Caller.from_dict(SYSTEM_ADMIN) is SYSTEM_ADMIN

    def test_system_admin(self):
        assert SYSTEM_ADMIN.id == "000000000000000000000000"
        assert SYSTEM_ADMIN.name == "systemAdmin"
        assert SYSTEM_ADMIN.type == "user"
        assert SYSTEM_ADMIN.role == "admin"
