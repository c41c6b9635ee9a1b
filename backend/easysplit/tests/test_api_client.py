"""
Tests for the HTTP client, run against the app in-process.
"""
import pytest
from easysplit.client.api_client import ApiValidationError, NotFoundError, SplitApiClient
from easysplit.client.autosave import SplitAutosaver
from easysplit.client.draft import SplitDraft
from easysplit.schemas.menu import MenuCreate
from easysplit.schemas.split import SplitCalculateRequest, SplitCreate


@pytest.fixture
def api(client):
    return SplitApiClient(client=client)


def test_menu_round_trip(api):
    created = api.create_menu(MenuCreate(name="Luigi's", items=[{"name": "Pizza", "price": 12.5}]))

    menu = api.get_menu(created.code.lower())

    assert menu.menu.name == "Luigi's"
    assert [i.price for i in menu.items] == [12.5]
    assert api.delete_menu(created.code) is True
    with pytest.raises(NotFoundError):
        api.get_menu(created.code)


def test_split_lifecycle(api, split_payload):
    created = api.create_split(SplitCreate.model_validate(split_payload))

    fetched = api.get_split(created.code)
    assert [t.total for t in fetched.totals] == [18.33, 18.33, 18.33]

    updated_payload = SplitCreate.model_validate({**split_payload, "name": "Renamed"})
    updated = api.update_split(created.code, updated_payload)
    assert updated.name == "Renamed"
    assert updated.code == created.code

    assert api.get_breakdown(created.code).endswith("Grand Total: £55.00")


def test_validation_errors_carry_details(api, split_payload):
    split_payload["totals"][0]["extraContribution"] = 500

    with pytest.raises(ApiValidationError) as exc_info:
        api.create_split(SplitCreate.model_validate(split_payload))

    assert exc_info.value.status_code == 400
    assert str(exc_info.value) == "Excess contribution"
    assert "exceed what others owe" in exc_info.value.details


def test_calculate(api, people):
    result = api.calculate(SplitCalculateRequest(
        people=people,
        items=[{"id": 1, "name": "Pasta", "price": 20}],
        quantities=[{"itemId": 1, "personId": "p1", "quantity": 1}],
        service_charge=10,
    ))

    assert result.totals[0].total == 22.00
    assert result.grand_total == 22.00


def test_unknown_split(api):
    with pytest.raises(NotFoundError):
        api.get_split("ZZZZZZZZ")


def test_draft_saved_and_resumed_from_another_device(api):
    draft = SplitDraft(currency="£")
    alice = draft.add_person("Alice")
    bob = draft.add_person("Bob")
    pizza = draft.add_item("Pizza", 30, owner_id=alice.id)
    draft.join_shared_items(bob.id, [pizza.instance_id])
    saver = SplitAutosaver(draft, api)

    assert saver.flush() is True

    resumed = SplitDraft.from_split(api.get_split(saver.code))
    assert resumed.item(pizza.instance_id).assigned_to == [alice.id, bob.id]
    assert [t.total for t in resumed.totals()] == [15.00, 15.00]
