from __future__ import annotations

import pytest

from estate_crm.contacts.properties import contact_properties, link_property, linked_property_ids, unlink_property
from estate_crm.errors import DataServiceError


@pytest.fixture(autouse=True)
def _properties(service) -> None:
    service.seed(
        "properties",
        {"id": "p-1", "title": "Marina View", "address": "Dubai Marina"},
        {"id": "p-2", "title": "Palm Villa", "address": "Palm Jumeirah"},
    )


def test_linking_twice_is_a_no_op(service, bus, published) -> None:
    first = link_property(service, "c-1", "p-1", "owner", events=bus)
    second = link_property(service, "c-1", "p-1", "owner", events=bus)

    assert len(service.rows("contact_properties")) == 1
    assert first.id == second.id
    assert len(published) == 1


def test_same_property_with_another_role_is_a_new_link(service) -> None:
    link_property(service, "c-1", "p-1", "owner")
    link_property(service, "c-1", "p-1", "investor")

    assert sorted(row["role"] for row in service.rows("contact_properties")) == ["investor", "owner"]


def test_unknown_role_is_rejected(service) -> None:
    with pytest.raises(ValueError):
        link_property(service, "c-1", "p-1", "landlord")
    assert service.rows("contact_properties") == []


def test_other_insert_errors_propagate(service) -> None:
    service.insert_failures["contact_properties"] = DataServiceError("permission denied", code="42501")

    with pytest.raises(DataServiceError):
        link_property(service, "c-1", "p-1", "owner")


def test_unlink_reports_removed_rows(service, bus, published) -> None:
    link_property(service, "c-1", "p-1", "owner")

    assert unlink_property(service, "c-1", "p-1", "owner", events=bus) == 1
    assert unlink_property(service, "c-1", "p-1", "owner", events=bus) == 0
    assert [event.action for event in published] == ["unlinked"]


def test_contact_properties_embeds_property_and_covers_aliases(service) -> None:
    link_property(service, "c-1", "p-1", "owner")
    link_property(service, "lead-1", "p-2", "buyer_interest")

    own = contact_properties(service, "c-1")
    assert [(link.property_id, link.property["title"]) for link in own] == [("p-1", "Marina View")]

    merged = contact_properties(service, "c-1", related_ids=["lead-1"])
    assert sorted(link.property_id for link in merged) == ["p-1", "p-2"]


def test_linked_property_ids_are_unique_and_ordered(service) -> None:
    link_property(service, "c-1", "p-1", "owner")
    link_property(service, "c-1", "p-1", "investor")
    link_property(service, "c-1", "p-2", "tenant")

    assert linked_property_ids(service, ["c-1"]) == ["p-1", "p-2"]
    assert linked_property_ids(service, []) == []
