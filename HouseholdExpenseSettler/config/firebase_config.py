import json
import logging

import firebase_admin
from firebase_admin import credentials, firestore

from config.settings import get_settings

logger = logging.getLogger("household_settler.firebase")

_db = None


def get_db():
    global _db
    if _db:
        return _db

    settings = get_settings()
    try:
        # Hosted deployment (env variable)
        if settings["service_account_json"]:
            cred = credentials.Certificate(json.loads(settings["service_account_json"]))
        else:
            # Local fallback
            cred = credentials.Certificate(settings["credentials_path"])

        if not firebase_admin._apps:
            firebase_admin.initialize_app(cred)

        _db = firestore.client()
        logger.info("Firestore client initialised")
        return _db

    except Exception as e:
        raise RuntimeError(f"Firebase init failed: {e}")
