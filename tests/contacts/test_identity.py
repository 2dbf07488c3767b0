from __future__ import annotations

from estate_crm.contacts.identity import (
    contact_leads,
    dedupe_key,
    find_potential_duplicates,
    merge_contacts,
    normalize_phone,
    resolve_related_contact_ids,
)


def _seed_aliases(service) -> None:
    service.seed(
        "leads",
        {"id": "lead-1", "name": "Ada", "contact_id": "c-1", "created_at": "2024-01-01T00:00:00+00:00"},
        {"id": "lead-2", "name": "Ada L.", "contact_id": "c-1", "created_at": "2024-02-01T00:00:00+00:00"},
        {"id": "lead-3", "name": "Grace", "contact_id": None, "created_at": "2024-03-01T00:00:00+00:00"},
    )
    service.seed("contacts", {"id": "c-1", "full_name": "Ada Lovelace"})


def test_canonical_id_resolves_to_every_lead_pointing_at_it(service) -> None:
    _seed_aliases(service)

    assert resolve_related_contact_ids(service, "c-1") == {"c-1", "lead-1", "lead-2"}


def test_lead_id_resolves_to_its_canonical_contact(service) -> None:
    _seed_aliases(service)

    assert resolve_related_contact_ids(service, "lead-1") == {"lead-1", "c-1"}


def test_unknown_id_resolves_to_itself(service) -> None:
    _seed_aliases(service)

    assert resolve_related_contact_ids(service, "missing") == {"missing"}


def test_lead_without_canonical_contact_is_alone(service) -> None:
    _seed_aliases(service)

    assert resolve_related_contact_ids(service, "lead-3") == {"lead-3"}


def test_contact_leads_returns_self_and_aliases_newest_first(service) -> None:
    _seed_aliases(service)
    service.seed("leads", {"id": "c-1", "name": "Ada (canonical)", "created_at": "2023-12-01T00:00:00+00:00"})

    rows = contact_leads(service, "c-1")

    assert [row["id"] for row in rows] == ["lead-2", "lead-1", "c-1"]


def test_contact_leads_quotes_ids_with_filter_punctuation(service) -> None:
    service.seed(
        "leads",
        {"id": "ada,(x)", "name": "Ada", "created_at": "2024-01-01T00:00:00+00:00"},
        {"id": "lead-7", "contact_id": "ada,(x)", "created_at": "2024-02-01T00:00:00+00:00"},
        {"id": "ada", "name": "Other Ada", "created_at": "2024-03-01T00:00:00+00:00"},
    )

    rows = contact_leads(service, "ada,(x)")

    assert [row["id"] for row in rows] == ["lead-7", "ada,(x)"]
    (filters,) = service.calls_to("select", "leads")
    assert filters[0].value == 'id.eq."ada,(x)",contact_id.eq."ada,(x)"'


def test_normalize_phone_keeps_only_digits() -> None:
    assert normalize_phone("+971 (50) 123-4567") == "971501234567"
    assert normalize_phone(None) == ""


def test_find_potential_duplicates_groups_by_email_and_long_phone() -> None:
    rows = [
        {"id": "1", "email": "Ada@Example.com", "phone": "050 123 4567"},
        {"id": "2", "email": "ada@example.com ", "phone": None},
        {"id": "3", "email": None, "phone": "0501234567"},
        {"id": "4", "email": "grace@example.com", "phone": "12345"},
        {"id": "5", "email": None, "phone": "12345"},
    ]

    groups = find_potential_duplicates(rows)

    assert [[row["id"] for row in group] for group in groups] == [["1", "2"], ["1", "3"]]


def test_dedupe_key_prefers_email_then_phone_then_id() -> None:
    assert dedupe_key({"id": "1", "email": "A@B.com", "phone": "123"}) == "a@b.com"
    assert dedupe_key({"id": "1", "phone": "+1 555"}) == "1555"
    assert dedupe_key({"id": "7"}) == "7"


def test_merge_contacts_points_duplicates_at_primary(service) -> None:
    _seed_aliases(service)

    merged = merge_contacts(service, "lead-1", ["lead-1", "lead-2", "lead-3"])

    assert sorted(row["id"] for row in merged) == ["lead-2", "lead-3"]
    by_id = {row["id"]: row for row in service.rows("leads")}
    assert by_id["lead-2"]["merged_into_id"] == "lead-1"
    assert "merged_into_id" not in by_id["lead-1"]


def test_merge_contacts_without_duplicates_writes_nothing(service) -> None:
    assert merge_contacts(service, "lead-1", ["lead-1"]) == []
    assert service.calls_to("update") == []
