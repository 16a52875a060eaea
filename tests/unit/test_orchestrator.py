"""
Tests for provider selection and the upload response contract of the
transcription orchestrator. Provider clients are AsyncMocks.
"""

import json
from unittest.mock import AsyncMock

import pytest

from mediacal.models.domain.media_domain import TranscriptionOptions, UploadedAsset
from mediacal.services.storage.resolver import StorageResolver
from mediacal.services.transcription.assembly_client import AssemblyAIError
from mediacal.services.transcription.google_client import GoogleSpeechError
from mediacal.services.transcription.orchestrator import (
    NOT_CONFIGURED_MESSAGE,
    TranscriptionConfigError,
    TranscriptionOrchestrator,
    build_providers,
)
from mediacal.services.transcription.providers import AssemblyAIProvider, GoogleSpeechProvider

MIB = 1024 * 1024


async def no_sleep(_seconds):
    return None


def _asset(size: int = 10, stored_name: str = "1700000000000-talk.wav", public_url="/uploads/x"):
    return UploadedAsset(
        stored_name=stored_name,
        storage_path=f"/tmp/{stored_name}",
        public_url=public_url,
        mime_category="audio",
        size_bytes=size,
        storage_kind="public" if public_url else "private",
    )


def _google_body(*phrases: str, words: list[str] | None = None) -> dict:
    results = [{"alternatives": [{"transcript": p}]} for p in phrases]
    if words:
        results[0]["alternatives"][0]["words"] = [{"word": w} for w in words]
    return {"results": results}


@pytest.fixture
def storage(test_settings):
    return StorageResolver(test_settings)


@pytest.fixture
def assembly_client():
    client = AsyncMock()
    client.upload.return_value = "https://cdn.assemblyai.com/upload/abc"
    client.create_transcript.return_value = {"id": "tr_123", "status": "queued"}
    return client


@pytest.fixture
def google_client():
    return AsyncMock()


@pytest.mark.asyncio
async def test_no_provider_degrades_to_message(storage):
    orchestrator = TranscriptionOrchestrator([], storage)

    response = await orchestrator.transcribe(_asset(), b"abc", TranscriptionOptions())

    payload = response.to_payload()
    assert payload["transcriptAvailable"] is False
    assert payload["message"] == NOT_CONFIGURED_MESSAGE
    assert payload["url"] == "/uploads/x"
    assert orchestrator.provider_name == "none"


def test_assembly_takes_priority_over_google(make_settings):
    providers = build_providers(make_settings(ASSEMBLY_API_KEY="a-key", GOOGLE_API_KEY="g-key"))

    assert [p.name for p in providers] == ["assembly", "google"]


@pytest.mark.asyncio
async def test_assembly_returns_job_handle_without_waiting(storage, assembly_client):
    provider = AssemblyAIProvider(assembly_client, sleep=no_sleep)
    orchestrator = TranscriptionOrchestrator([provider], storage)

    response = await orchestrator.transcribe(_asset(), b"abc", TranscriptionOptions())

    assert response.transcript_id == "tr_123"
    assert response.transcript_available is False
    assert "/transcript/status/tr_123" in response.message
    assembly_client.upload.assert_awaited_once_with(b"abc")
    assembly_client.create_transcript.assert_awaited_once_with("https://cdn.assemblyai.com/upload/abc")
    assembly_client.get_transcript.assert_not_awaited()


@pytest.mark.asyncio
async def test_assembly_uses_blob_url_instead_of_uploading(storage, assembly_client):
    provider = AssemblyAIProvider(assembly_client, sleep=no_sleep)
    orchestrator = TranscriptionOrchestrator([provider], storage)
    asset = _asset(public_url="https://blob.example/uploads/a.wav")
    asset.storage_kind = "blob"

    await orchestrator.transcribe(asset, b"abc", TranscriptionOptions())

    assembly_client.upload.assert_not_awaited()
    assembly_client.create_transcript.assert_awaited_once_with("https://blob.example/uploads/a.wav")


@pytest.mark.asyncio
async def test_provider_url_is_never_substituted_for_url(storage, assembly_client):
    provider = AssemblyAIProvider(assembly_client, sleep=no_sleep)
    orchestrator = TranscriptionOrchestrator([provider], storage)

    response = await orchestrator.transcribe(_asset(public_url=None), b"abc", TranscriptionOptions())

    payload = response.to_payload()
    assert payload["url"] is None
    assert payload["providerMediaUrl"] == "https://cdn.assemblyai.com/upload/abc"


@pytest.mark.asyncio
async def test_assembly_wait_writes_transcript_artifacts(storage, assembly_client):
    assembly_client.get_transcript.side_effect = [
        {"id": "tr_123", "status": "processing"},
        {
            "id": "tr_123",
            "status": "completed",
            "text": "Hello world.",
            "words": [{"text": "Hello"}, {"text": "um"}, {"text": "world."}],
        },
    ]
    provider = AssemblyAIProvider(assembly_client, poll_interval=2, poll_timeout=300, sleep=no_sleep)
    orchestrator = TranscriptionOrchestrator([provider], storage)
    asset = _asset()

    response = await orchestrator.transcribe(
        asset, b"abc", TranscriptionOptions(verbatim=True, wait=True)
    )

    assert response.transcript_available is True
    assert response.transcript_text == "Hello world."
    assert response.transcript_url == f"/uploads/{asset.basename}.txt"
    assert response.verbatim_available is True
    assert response.transcription_json_url == f"/uploads/{asset.basename}.transcription.assembly.json"

    uploads = storage.local_dir
    assert (uploads / f"{asset.basename}.txt").read_text() == "Hello world."
    assert (uploads / f"{asset.basename}.verbatim.txt").read_text() == "Hello um world."
    saved = json.loads((uploads / f"{asset.basename}.transcription.assembly.json").read_text())
    assert saved["status"] == "completed"


@pytest.mark.asyncio
async def test_assembly_wait_times_out(storage, assembly_client):
    assembly_client.get_transcript.return_value = {"id": "tr_123", "status": "processing"}
    provider = AssemblyAIProvider(assembly_client, poll_interval=2, poll_timeout=0.05)
    orchestrator = TranscriptionOrchestrator([provider], storage)

    response = await orchestrator.transcribe(_asset(), b"abc", TranscriptionOptions(wait=True))

    assert response.transcript_available is False
    assert "timed out" in response.message


@pytest.mark.asyncio
async def test_assembly_upload_failure_is_reported_not_raised(storage, assembly_client):
    assembly_client.upload.side_effect = AssemblyAIError(
        "AssemblyAI upload failed (HTTP 401)", status_code=401, response_data={"error": "Invalid API key"}
    )
    orchestrator = TranscriptionOrchestrator([AssemblyAIProvider(assembly_client)], storage)

    response = await orchestrator.transcribe(_asset(), b"abc", TranscriptionOptions())

    assert response.transcript_available is False
    assert response.message.startswith("AssemblyAI upload failed")
    assert "Invalid API key" in response.message


@pytest.mark.asyncio
async def test_google_small_asset_uses_sync_recognize(storage, google_client):
    google_client.recognize.return_value = _google_body("hello", "there")
    provider = GoogleSpeechProvider(google_client, sync_max_bytes=5 * MIB, sleep=no_sleep)
    orchestrator = TranscriptionOrchestrator([provider], storage)

    response = await orchestrator.transcribe(_asset(size=5 * MIB - 1), b"abc", TranscriptionOptions())

    google_client.recognize.assert_awaited_once_with(b"abc", "en-US", False)
    google_client.long_running_recognize.assert_not_awaited()
    assert response.transcript_available is True
    assert response.transcript_text == "hello there"


@pytest.mark.asyncio
async def test_google_large_asset_uses_long_running(storage, google_client):
    google_client.long_running_recognize.return_value = "op-1"
    google_client.get_operation.side_effect = [
        {"name": "op-1", "done": False},
        {"name": "op-1", "done": True, "response": _google_body("long", words=["long"])},
    ]
    provider = GoogleSpeechProvider(google_client, sync_max_bytes=5 * MIB, sleep=no_sleep)
    orchestrator = TranscriptionOrchestrator([provider], storage)

    response = await orchestrator.transcribe(
        _asset(size=5 * MIB), b"abc", TranscriptionOptions(verbatim=True, language_code="fr-FR")
    )

    google_client.recognize.assert_not_awaited()
    google_client.long_running_recognize.assert_awaited_once_with(b"abc", "fr-FR", True)
    assert google_client.get_operation.await_count == 2
    assert response.transcript_text == "long"
    assert response.verbatim_available is True


@pytest.mark.asyncio
async def test_google_long_running_can_be_forced(storage, google_client):
    google_client.long_running_recognize.return_value = "op-2"
    google_client.get_operation.return_value = {"done": True, "response": {"results": []}}
    provider = GoogleSpeechProvider(google_client, sleep=no_sleep)
    orchestrator = TranscriptionOrchestrator([provider], storage)

    response = await orchestrator.transcribe(
        _asset(size=10), b"abc", TranscriptionOptions(long_running=True)
    )

    assert response.transcript_available is False
    assert response.message == "Google longrunning transcription returned empty text"


@pytest.mark.asyncio
async def test_google_long_running_timeout(storage, google_client):
    google_client.long_running_recognize.return_value = "op-3"
    google_client.get_operation.return_value = {"done": False}
    provider = GoogleSpeechProvider(
        google_client, sync_max_bytes=1, poll_interval=2, poll_timeout=0.05
    )
    orchestrator = TranscriptionOrchestrator([provider], storage)

    response = await orchestrator.transcribe(_asset(size=10), b"abc", TranscriptionOptions())

    assert response.message == "Longrunning transcription timed out"


@pytest.mark.asyncio
async def test_google_api_error_is_reported(storage, google_client):
    google_client.recognize.side_effect = GoogleSpeechError(
        "Google Speech recognize failed (HTTP 400)", status_code=400, response_data={"error": {"message": "bad audio"}}
    )
    orchestrator = TranscriptionOrchestrator([GoogleSpeechProvider(google_client)], storage)

    response = await orchestrator.transcribe(_asset(), b"abc", TranscriptionOptions())

    assert response.transcript_available is False
    assert response.message.startswith("Transcription failed:")
    assert "bad audio" in response.message


@pytest.mark.asyncio
async def test_unexpected_provider_exception_never_escapes(storage):
    provider = AsyncMock()
    provider.name = "assembly"
    provider.submit.side_effect = RuntimeError("socket closed")
    orchestrator = TranscriptionOrchestrator([provider], storage)

    response = await orchestrator.transcribe(_asset(), b"abc", TranscriptionOptions())

    assert response.message == "Transcription failed: socket closed"


@pytest.mark.asyncio
async def test_status_requires_assembly(storage, google_client):
    orchestrator = TranscriptionOrchestrator([GoogleSpeechProvider(google_client)], storage)

    with pytest.raises(TranscriptionConfigError):
        await orchestrator.get_status("tr_1")


@pytest.mark.asyncio
async def test_provider_without_job_handles_rejects_status(google_client):
    provider = GoogleSpeechProvider(google_client)

    with pytest.raises(TranscriptionConfigError):
        await provider.fetch_status("op_1")
    google_client.get_operation.assert_not_awaited()


@pytest.mark.asyncio
async def test_status_is_normalized(storage, assembly_client):
    assembly_client.get_transcript.return_value = {"id": "tr_1", "status": "error", "error": "bad media"}
    orchestrator = TranscriptionOrchestrator([AssemblyAIProvider(assembly_client)], storage)

    status = await orchestrator.get_status("tr_1")

    assert status.status == "failed"
    assert status.provider_status == "error"
    assert status.error == "bad media"
    assert status.text is None
