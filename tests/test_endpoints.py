import json
import os

import pytest

from app.core.config import GRAPH_CRITERIA_MODEL
from app.core.errors import ConfigurationError, ProviderError
from app.services.storage import StagedUpload

CRITERIA = {
    "CC": {"score": 7, "explanation": "Clear progression.", "examples": ["'Firstly' - mechanical linking"]},
    "TA": {"score": 6, "explanation": "Partly addressed.", "examples": ["'some people' - vague position"]},
    "LR": {"score": 7, "explanation": "Adequate range.", "examples": ["'very big' - informal"]},
    "GRA": {"score": 6, "explanation": "Some errors.", "examples": ["'He go' - agreement"]},
    "Overall": 7,
}

TEXT_ROUTES = [
    ("/api/essaycriteria", ("topic", "essay")),
    ("/api/grammar", ("essay",)),
    ("/api/graphcriteria", ("topic", "essay")),
    ("/api/improvement", ("essay",)),
    ("/api/improvementgraph", ("topic", "essay")),
    ("/api/improvementletter", ("topic", "essay")),
    ("/api/lettercriteria", ("topic", "essay")),
]


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "IELTS Backend API is running."


def test_grammar_returns_correction(client, stub_llm):
    stub_llm.reply = "He goes to school."
    response = client.post("/api/grammar", json={"essay": "He go to school."})
    assert response.status_code == 200
    assert response.json() == {"correction": "He goes to school."}
    payload = stub_llm.calls[0]
    assert "response_format" not in payload
    assert payload["messages"][0]["content"].endswith("He go to school.")


def test_essay_criteria_missing_essay(client, stub_llm):
    response = client.post("/api/essaycriteria", json={"topic": "Cities"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing topic or essay in request body"}
    assert stub_llm.calls == []


@pytest.mark.parametrize("route,fields", TEXT_ROUTES)
def test_missing_fields_never_reach_provider(client, stub_llm, route, fields):
    full = {"topic": "Some topic", "essay": "Some essay."}
    for field in fields:
        body = {key: value for key, value in full.items() if key != field}
        response = client.post(route, json=body)
        assert response.status_code == 400
        body[field] = ""
        assert client.post(route, json=body).status_code == 400
    assert stub_llm.calls == []


def test_essay_only_routes_use_their_own_message(client):
    response = client.post("/api/improvement", json={})
    assert response.json() == {"error": "Missing essay in request body"}


def test_non_json_body_is_rejected(client, stub_llm):
    response = client.post("/api/grammar", content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert stub_llm.calls == []


@pytest.mark.parametrize("route", ["/api/essaycriteria", "/api/graphcriteria", "/api/lettercriteria"])
def test_criteria_passes_scores_through(client, stub_llm, route):
    stub_llm.reply = json.dumps(CRITERIA)
    response = client.post(route, json={"topic": "Cities", "essay": "Cities are big."})
    assert response.status_code == 200
    # Overall is not the mean of the four scores and is still returned untouched
    assert response.json() == CRITERIA
    assert stub_llm.calls[0]["response_format"] == {"type": "json_object"}


def test_graph_criteria_uses_graph_model(client, stub_llm):
    stub_llm.reply = json.dumps(CRITERIA)
    client.post("/api/graphcriteria", json={"topic": "Chart", "essay": "The chart shows."})
    assert stub_llm.calls[0]["model"] == GRAPH_CRITERIA_MODEL


def test_criteria_with_non_json_reply(client, stub_llm):
    stub_llm.reply = "Sure! Here is your feedback: band 7."
    response = client.post("/api/lettercriteria", json={"topic": "Dear Sir", "essay": "I am writing."})
    assert response.status_code == 500
    assert response.json() == {"error": "Received invalid JSON response from AI service"}


@pytest.mark.parametrize("route,key", [
    ("/api/improvement", "improvement"),
    ("/api/improvementgraph", "improvement"),
    ("/api/improvementletter", "improvement"),
])
def test_improvement_routes(client, stub_llm, route, key):
    stub_llm.reply = "<table><tr><td>a</td><td>b</td></tr></table>"
    response = client.post(route, json={"topic": "Topic", "essay": "Essay text."})
    assert response.status_code == 200
    assert response.json() == {key: stub_llm.reply}


def test_provider_error_message_reaches_client(client, stub_llm):
    stub_llm.error = ProviderError(402, "quota exceeded")
    response = client.post("/api/grammar", json={"essay": "text"})
    assert response.status_code == 500
    assert "quota exceeded" in response.json()["error"]


def test_configuration_error_is_a_500(client, stub_llm):
    stub_llm.error = ConfigurationError("Server configuration error: API Key missing.")
    response = client.post("/api/improvement", json={"essay": "text"})
    assert response.status_code == 500
    assert response.json() == {"error": "Server configuration error: API Key missing."}


def image_files(*contents):
    return [("images", (f"page{i}.png", content, "image/png")) for i, content in enumerate(contents)]


def test_transcriber_sends_images_and_cleans_up(client, stub_llm, upload_dir):
    stub_llm.reply = "Paragraph one.\n\nParagraph two."
    response = client.post("/api/transcriber", files=image_files(b"first", b"second"))
    assert response.status_code == 200
    assert response.json() == {"transcription": "Paragraph one.\n\nParagraph two."}

    payload = stub_llm.calls[0]
    content = payload["messages"][0]["content"]
    assert content[0]["type"] == "text"
    assert [part["image_url"]["url"] for part in content[1:]] == [
        "data:image/png;base64,Zmlyc3Q=",
        "data:image/png;base64,c2Vjb25k",
    ]
    assert payload["max_tokens"] == 1500
    assert os.listdir(upload_dir) == []


def test_transcriber_cleans_up_when_provider_fails(client, stub_llm, upload_dir):
    stub_llm.error = ProviderError(503, "overloaded")
    response = client.post("/api/transcriber", files=image_files(b"a", b"b", b"c"))
    assert response.status_code == 500
    assert len(stub_llm.calls) == 1
    assert os.listdir(upload_dir) == []


def test_transcriber_without_images(client, stub_llm):
    response = client.post("/api/transcriber", data={"note": "nothing attached"})
    assert response.status_code == 400
    assert response.json() == {"error": "No image files were uploaded."}
    assert stub_llm.calls == []


def test_transcriber_rejects_more_than_three_images(client, stub_llm, upload_dir):
    response = client.post("/api/transcriber", files=image_files(b"1", b"2", b"3", b"4"))
    assert response.status_code == 400
    assert stub_llm.calls == []
    assert os.listdir(upload_dir) == []


def test_transcriber_rejects_oversize_images(build_client, stub_llm):
    client = build_client(max_image_bytes=8)
    response = client.post("/api/transcriber", files=image_files(b"small", b"far too large"))
    assert response.status_code == 400
    assert stub_llm.calls == []


def test_hosted_transcriber_without_cloudinary_settings(build_client, stub_llm):
    client = build_client(image_strategy="hosted")
    response = client.post("/api/transcriber", files=image_files(b"page"))
    assert response.status_code == 500
    assert response.json() == {"error": "Server configuration error: Cloudinary credentials missing."}
    assert stub_llm.calls == []


def test_text_field_in_place_of_images_is_a_400(client, stub_llm):
    response = client.post("/api/transcriber", data={"images": "not-a-file"})
    assert response.status_code == 400
    body = response.json()
    assert list(body) == ["error"]
    assert body["error"].startswith("Invalid request")
    assert stub_llm.calls == []


def fail_reads_for(monkeypatch, *filenames):
    original_read = StagedUpload.read

    async def read(self):
        if self.filename in filenames:
            raise OSError(f"cannot read {self.path}")
        return await original_read(self)

    monkeypatch.setattr(StagedUpload, "read", read)


def test_transcriber_skips_unreadable_staged_image(client, stub_llm, upload_dir, monkeypatch):
    fail_reads_for(monkeypatch, "page1.png")
    stub_llm.reply = "Transcribed."
    response = client.post("/api/transcriber", files=image_files(b"first", b"middle", b"second"))
    assert response.status_code == 200
    assert response.json() == {"transcription": "Transcribed."}
    content = stub_llm.calls[0]["messages"][0]["content"]
    assert [part["image_url"]["url"] for part in content[1:]] == [
        "data:image/png;base64,Zmlyc3Q=",
        "data:image/png;base64,c2Vjb25k",
    ]
    assert os.listdir(upload_dir) == []


def test_transcriber_fails_when_no_staged_image_is_readable(client, stub_llm, upload_dir, monkeypatch):
    fail_reads_for(monkeypatch, "page0.png", "page1.png", "page2.png")
    response = client.post("/api/transcriber", files=image_files(b"a", b"b", b"c"))
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process uploaded image files."}
    assert stub_llm.calls == []
    assert os.listdir(upload_dir) == []
