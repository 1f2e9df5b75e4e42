# reviewsync Remote Module
# Remote store contract, Airtable implementation and upload collaborator

from reviewsync.remote.airtable import AirtableStore, since_formula
from reviewsync.remote.base import RemoteStore
from reviewsync.remote.upload import Uploader, upload_attachments

__all__ = [
    "RemoteStore",
    "AirtableStore",
    "since_formula",
    "Uploader",
    "upload_attachments",
]
