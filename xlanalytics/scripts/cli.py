"""
A simple CLI for running the server and for local development.

    xlanalytics run
    xlanalytics setup
    xlanalytics keys {directory}
    xlanalytics token {private_key_file} {user_id} {email} [name]

`keys` and `token` stand in for the identity provider during development:
point `XLANALYTICS_IDENTITY_PUBLIC_KEY_FILENAME` at the generated public key
and pass the printed token as a bearer token.
"""

import os
import sys
from datetime import timedelta
from pathlib import Path

import uvicorn

USAGE = (
    "Supported commands are: xlanalytics run, xlanalytics setup, "
    "xlanalytics keys {directory}, "
    "xlanalytics token {private_key_file} {user_id} {email} [name]"
)

# Only protects the development key on disk
DEVELOPMENT_KEY_PASSWORD_VARIABLE = "XLANALYTICS_DEVELOPMENT_KEY_PASSWORD"


def run_server():
    uvicorn.run("xlanalytics.api.app:app", host="0.0.0.0")


def setup():
    from xlanalytics.config.settings import Settings

    settings = Settings()
    settings.sync_manager().create_all()


def keys(directory: Path):
    from xlanalytics.core.keys import generate_key_pair

    public_key, private_key = generate_key_pair(
        key_pair_type="Ed25519",
        key_password=os.environ.get(DEVELOPMENT_KEY_PASSWORD_VARIABLE, "CHANGEME"),
    )

    directory.mkdir(exist_ok=True, parents=True)

    with open(directory / "public_key.pem", "wb") as handle:
        handle.write(public_key)

    private_location = directory / "private_key.pem"

    with open(private_location, "wb") as handle:
        handle.write(private_key)

    private_location.chmod(0o600)


def token(private_key_file: Path, user_id: str, email: str, name: str | None):
    from xlanalytics.core.tokens import build_identity_payload, sign_identity_token

    with open(private_key_file, "rb") as handle:
        private_key = handle.read()

    payload = build_identity_payload(
        user_id=user_id, email=email, name=name, validity=timedelta(hours=8)
    )

    return sign_identity_token(
        key_password=os.environ.get(DEVELOPMENT_KEY_PASSWORD_VARIABLE, "CHANGEME"),
        private_key=private_key,
        key_pair_type="Ed25519",
        payload=payload,
    )


def main():
    try:
        command = sys.argv[1]
    except IndexError:
        print(USAGE)
        exit(1)

    match command:
        case "run":
            run_server()
        case "setup":
            setup()
            print("Setup complete")
        case "keys" if len(sys.argv) == 3:
            keys(directory=Path(sys.argv[2]))
            print(f"Keys written to {sys.argv[2]}")
        case "token" if len(sys.argv) in (5, 6):
            print(
                token(
                    private_key_file=Path(sys.argv[2]),
                    user_id=sys.argv[3],
                    email=sys.argv[4],
                    name=sys.argv[5] if len(sys.argv) == 6 else None,
                )
            )
        case _:
            print(USAGE)
            exit(1)
