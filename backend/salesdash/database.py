"""
Firebase / Firestore connection
"""
import logging

import firebase_admin
from firebase_admin import credentials, firestore

from salesdash.config import settings

logger = logging.getLogger(__name__)


def init_firebase() -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
        if settings.FIREBASE_CREDENTIALS_PATH:
            cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
        else:
            cred = credentials.ApplicationDefault()
        logger.info("Initialising Firebase app (project=%s)", settings.FIREBASE_PROJECT_ID or "default")
        return firebase_admin.initialize_app(cred, options)


def get_db():
    """
    Dependency returning the Firestore client
    """
    init_firebase()
    return firestore.client()
