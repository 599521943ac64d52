# google_client.py
import json

from google.oauth2 import service_account
from googleapiclient.discovery import Resource, build

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
]


def get_credentials(credentials_json: str) -> service_account.Credentials:
    """
    Service-account credentials from the JSON key text (as pasted into the
    GOOGLE_SHEETS_CREDENTIALS environment variable).
    """
    if not credentials_json:
        raise RuntimeError("GOOGLE_SHEETS_CREDENTIALS is not set in the environment")

    info = json.loads(credentials_json)
    return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)


def get_sheets_service(credentials_json: str) -> Resource:
    creds = get_credentials(credentials_json)
    return build("sheets", "v4", credentials=creds, cache_discovery=False)
