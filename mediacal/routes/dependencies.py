"""
FastAPI dependencies resolving the service objects the app factory placed
on app.state. Tests swap a component by assigning a replacement on
app.state before issuing requests.
"""

from fastapi import Request

from mediacal.config import Settings
from mediacal.services.calendar.ics_converter import ICSConverter
from mediacal.services.reminders.scheduler import ReminderScheduler
from mediacal.services.search.media_proxy import MediaProxy
from mediacal.services.search.youtube_service import InvidiousClient, YouTubeSearchClient
from mediacal.services.storage.resolver import StorageResolver
from mediacal.services.transcription.orchestrator import TranscriptionOrchestrator
from mediacal.services.uploads.receiver import UploadReceiver


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageResolver:
    return request.app.state.storage


def get_receiver(request: Request) -> UploadReceiver:
    return request.app.state.receiver


def get_orchestrator(request: Request) -> TranscriptionOrchestrator:
    return request.app.state.orchestrator


def get_converter(request: Request) -> ICSConverter:
    return request.app.state.converter


def get_reminder_scheduler(request: Request) -> ReminderScheduler:
    return request.app.state.reminder_scheduler


def get_youtube(request: Request) -> YouTubeSearchClient:
    return request.app.state.youtube


def get_invidious(request: Request) -> InvidiousClient:
    return request.app.state.invidious


def get_media_proxy(request: Request) -> MediaProxy:
    return request.app.state.media_proxy
