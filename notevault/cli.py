"""CLI for NoteVault operators."""
import sys
from pathlib import Path
from typing import Optional

import click

from notevault.adapters.storage.local import LocalBlobStorage
from notevault.domain.auth import issue_token
from notevault.domain.blobs.errors import BlobStoreError, ConfigurationInvalid
from notevault.domain.blobs.keys import generate_master_key
from notevault.domain.blobs.store import BlobStoreConfig, EncryptedBlobStore
from notevault.settings import load_settings


def _settings_or_exit():
    try:
        return load_settings()
    except ConfigurationInvalid as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
def cli():
    """NoteVault CLI."""
    pass


@cli.command("keygen")
def keygen():
    """Print a new master key for NOTEVAULT_MASTER_KEY."""
    click.echo(generate_master_key())


@cli.command("issue-token")
@click.option("--sub", "subject", required=True, help="Principal ID the token is issued to")
@click.option("--expires-in", type=int, default=None, help="Lifetime in seconds (default JWT_EXPIRE_SECONDS)")
def issue_token_cmd(subject: str, expires_in: Optional[int]):
    """Issue an HS256 bearer token signed with JWT_SECRET (development only)."""
    settings = _settings_or_exit()
    if not settings.JWT_SECRET:
        click.echo("Error: JWT_SECRET is not set", err=True)
        sys.exit(1)

    click.echo(issue_token(
        subject,
        settings.JWT_SECRET.get_secret_value(),
        expires_in or settings.JWT_EXPIRE_SECONDS,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
    ))


@cli.command("decrypt")
@click.argument("locator")
@click.option("--iv", required=True, help="Blob IV (32 hex chars)")
@click.option("--tag", default=None, help="GCM tag (32 hex chars); omit for CBC blobs")
@click.option("--out", "out_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write plaintext here instead of stdout")
def decrypt_blob(locator: str, iv: str, tag: Optional[str], out_path: Optional[Path]):
    """Decrypt a single stored blob (operator recovery)."""
    settings = _settings_or_exit()
    blob_dir = Path(locator).resolve().parent
    if not blob_dir.is_dir():
        click.echo(f"Error: Blob directory does not exist: {blob_dir}", err=True)
        sys.exit(1)
    storage = LocalBlobStorage(blob_dir)
    store = EncryptedBlobStore(BlobStoreConfig.from_settings(settings), storage)

    try:
        data = store.decrypt(locator, iv, tag)
    except BlobStoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if out_path:
        out_path.write_bytes(data)
        click.echo(f"✓ Wrote {len(data)} bytes to {out_path}")
    else:
        click.get_binary_stream("stdout").write(data)


if __name__ == "__main__":
    cli()
