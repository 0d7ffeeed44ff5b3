from firebase_admin import get_app, initialize_app

from admissions.core.settings import get_settings


def init_firebase() -> None:
    """Initialize Firebase Admin SDK (idempotent).

    Credentials come from GOOGLE_APPLICATION_CREDENTIALS (or the runtime's
    default service account). FIREBASE_PROJECT_ID pins the project whose
    tokens and custom claims this service manages.
    """
    try:
        get_app()
    except ValueError:
        project_id = get_settings().firebase_project_id
        options = {"projectId": project_id} if project_id else None
        initialize_app(options=options)
