from google.cloud import secretmanager

from config import settings


def get_secret(secret_id):
    client = secretmanager.SecretManagerServiceClient()
    response = client.access_secret_version(request={"name": secret_id})
    return response.payload.data.decode("UTF-8")


def get_session_secret() -> str:
    """Session signing key, from Secret Manager when a resource name is configured."""
    if settings.SESSION_SECRET_ID:
        return get_secret(settings.SESSION_SECRET_ID)
    return settings.SESSION_SECRET
