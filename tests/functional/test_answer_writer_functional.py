"""POST /app/getquestions: saving checkout answers as customer metafields."""

from __future__ import annotations

import json

from conftest import CUSTOMER_GID, CUSTOMER_ID, SHOP

from app.logic import repair_queue


def _submit(client, answers, *, customer_id=CUSTOMER_ID, shop=SHOP):
    return client.post("/app/getquestions", json={"customerId": customer_id, "shop": shop, "answers": answers})


def test_answer_is_written_under_sanitized_title(client, installed_shop, fake_shopify) -> None:
    resp = _submit(client, {"Favorite Color": "Blue"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["savedCount"] == 1
    assert body["message"] == "Answers saved successfully"
    assert body["metafields"][0]["key"] == "favoritecolor"
    assert fake_shopify.value(CUSTOMER_GID, "favoritecolor") == "Blue"

    [write] = fake_shopify.calls_to("metafieldsSet")
    assert write["metafields"] == [
        {
            "ownerId": CUSTOMER_GID,
            "namespace": "custom",
            "key": "favoritecolor",
            "value": "Blue",
            "type": "single_line_text_field",
        }
    ]


def test_definition_is_created_before_the_write(client, installed_shop, fake_shopify) -> None:
    _submit(client, {"Favorite Color": "Blue"})

    operations = [name for name, _ in fake_shopify.calls]
    assert operations == ["metafieldDefinitionCreate", "metafieldsSet"]
    definition = fake_shopify.definition("favoritecolor")
    assert definition["name"] == "Favoritecolor"
    assert definition["description"] == "Survey question answer: favoritecolor"
    [create] = fake_shopify.calls_to("metafieldDefinitionCreate")
    assert create["definition"]["ownerType"] == "CUSTOMER"
    assert create["definition"]["type"] == "single_line_text_field"


def test_existing_definition_is_not_an_error(client, installed_shop, fake_shopify) -> None:
    fake_shopify.add_definition("favoritecolor")

    resp = _submit(client, {"Favorite Color": "Blue"})
    assert resp.status_code == 200
    assert repair_queue.list_pending(SHOP) == []


def test_blank_answers_save_nothing(client, installed_shop, fake_shopify) -> None:
    resp = _submit(client, {"Favorite Color": "", "Age": "   ", "Tags": []})

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "No valid answers to save",
        "savedCount": 0,
        "metafields": [],
    }
    assert fake_shopify.calls == []


def test_blank_answers_are_skipped_among_valid_ones(client, installed_shop, fake_shopify) -> None:
    resp = _submit(client, {"Favorite Color": "Blue", "Age": ""})

    assert resp.json()["savedCount"] == 1
    assert fake_shopify.value(CUSTOMER_GID, "age") is None


def test_multiselect_answers_are_joined(client, installed_shop, fake_shopify) -> None:
    _submit(client, {"Interests": ["Running", "Cycling"]})

    assert fake_shopify.value(CUSTOMER_GID, "interests") == "Running, Cycling"


def test_submitted_question_is_excluded_from_next_selection(
    client, installed_shop, add_question, set_count
) -> None:
    add_question("Favorite Color")
    add_question("Age", "number")
    set_count(0)

    assert _submit(client, {"favorite color": "Blue"}).status_code == 200

    resp = client.get("/app/getquestions", params={"customerId": CUSTOMER_ID, "shop": SHOP})
    assert [q["title"] for q in resp.json()["questions"]] == ["age"]


def test_plain_text_body_is_accepted(client, installed_shop, fake_shopify) -> None:
    payload = {"customerId": int(CUSTOMER_ID), "shop": SHOP, "answers": {"Age": "30"}}
    resp = client.post(
        "/app/getquestions", content=json.dumps(payload), headers={"Content-Type": "text/plain"}
    )

    assert resp.status_code == 200
    assert fake_shopify.value(CUSTOMER_GID, "age") == "30"


def test_many_answers_are_written_in_chunks(client, installed_shop, fake_shopify) -> None:
    answers = {f"Question {i}": f"answer {i}" for i in range(30)}

    resp = _submit(client, answers)
    assert resp.json()["savedCount"] == 30
    chunks = [len(call["metafields"]) for call in fake_shopify.calls_to("metafieldsSet")]
    assert chunks == [25, 5]


def test_user_errors_fail_the_submission_with_details(client, installed_shop, fake_shopify) -> None:
    errors = [{"field": ["metafields", "0", "value"], "message": "Value is too long", "code": "INVALID"}]
    fake_shopify.failures["metafieldsSet"] = ("user_errors", errors)

    resp = _submit(client, {"Favorite Color": "Blue"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Failed to save answers", "details": errors}


def test_definition_failure_does_not_block_the_write_and_is_queued(
    client, installed_shop, fake_shopify
) -> None:
    errors = [{"field": ["definition"], "message": "Limit reached", "code": "LIMIT_EXCEEDED"}]
    fake_shopify.failures["metafieldDefinitionCreate"] = ("user_errors", errors)

    resp = _submit(client, {"Favorite Color": "Blue"})
    assert resp.status_code == 200
    assert fake_shopify.value(CUSTOMER_GID, "favoritecolor") == "Blue"

    [task] = repair_queue.list_pending(SHOP)
    assert task.action == repair_queue.CREATE_DEFINITION
    assert task.metafield_key == "favoritecolor"
    assert "Limit reached" in task.last_error


def test_validation_happens_before_any_upstream_call(client, installed_shop, fake_shopify) -> None:
    cases = [
        ({"customerId": CUSTOMER_ID, "shop": SHOP}, "Answers are required"),
        ({"customerId": CUSTOMER_ID, "shop": SHOP, "answers": {}}, "Answers are required"),
        ({"shop": SHOP, "answers": {"Age": "1"}}, "Customer ID and shop are required"),
        ({"customerId": CUSTOMER_ID, "answers": {"Age": "1"}}, "Customer ID and shop are required"),
        (
            {"customerId": CUSTOMER_ID, "shop": SHOP, "answers": ["Blue"]},
            "Answers must map question titles to answers",
        ),
    ]
    for payload, message in cases:
        resp = client.post("/app/getquestions", json=payload)
        assert resp.status_code == 400
        assert resp.json() == {"error": message}
    assert fake_shopify.calls == []


def test_malformed_body_is_rejected(client) -> None:
    resp = client.post("/app/getquestions", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Request body must be valid JSON"}


def test_missing_session_requires_reinstall(client, fake_shopify) -> None:
    resp = _submit(client, {"Favorite Color": "Blue"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required. Please reinstall the app."}
    assert fake_shopify.calls == []
