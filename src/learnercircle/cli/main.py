"""Learner Circle CLI — talk to the auth API from a terminal.

Usage:
    learnercircle create-admin --email a@x.com --first-name Ann --last-name Lee
    learnercircle login --email a@x.com          # prints the token
    learnercircle register --email s@x.com ...   # student by default
    learnercircle whoami --token $TOKEN
    learnercircle refresh --token $TOKEN

The API base URL comes from LEARNERCIRCLE_API_URL (default
http://localhost:10000) and the token from --token or LEARNERCIRCLE_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:10000"
ROLES = ["student", "parent", "tutor", "admin"]


def _api_url() -> str:
    return os.environ.get("LEARNERCIRCLE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Learner Circle backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. Click's CliRunner inside an async
    test) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _auth_headers(token: Optional[str]) -> dict[str, str]:
    if not token:
        click.secho(
            "Error: --token required (or set LEARNERCIRCLE_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return {"Authorization": f"Bearer {token}"}


async def _request(method: str, path: str, **kwargs) -> dict:
    async with _client() as client:
        resp = await client.request(method, path, **kwargs)
    try:
        data = resp.json()
    except ValueError:
        data = {"error": resp.text}
    if resp.is_error:
        message = data.get("error", f"HTTP {resp.status_code}")
        code = data.get("code")
        click.secho(
            f"Error ({resp.status_code}{', ' + code if code else ''}): {message}",
            fg="red",
            err=True,
        )
        for detail in data.get("details") or []:
            click.secho(f"  {detail['field']}: {detail['message']}", fg="red", err=True)
        sys.exit(1)
    return data


def _print_session(data: dict, show_token: bool) -> None:
    user = data.get("user", {})
    click.secho(
        f"{user.get('first_name', '')} {user.get('last_name', '')} <{user.get('email', '')}>",
        bold=True,
    )
    click.echo(f"role: {user.get('role')}   redirect: {data.get('redirect', '-')}")
    if show_token:
        click.echo(data["token"])


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="learnercircle")
def cli():
    """Learner Circle command-line client."""


@cli.command()
@click.option("--email", required=True)
@click.option("--password", prompt=True, hide_input=True)
@click.option("--quiet", "-q", is_flag=True, help="Print only the token.")
def login(email: str, password: str, quiet: bool):
    """Log in and print an access token."""
    data = _run(_request("POST", "/api/auth/login", json={"email": email, "password": password}))
    if quiet:
        click.echo(data["token"])
    else:
        _print_session(data, show_token=True)


@cli.command()
@click.option("--email", required=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.option("--phone", default=None)
@click.option("--role", type=click.Choice(ROLES), default="student", show_default=True)
@click.option("--token", envvar="LEARNERCIRCLE_TOKEN", default=None,
              help="Admin token, needed for any role other than student.")
def register(email, password, first_name, last_name, phone, role, token):
    """Register a new account."""
    body = {
        "email": email,
        "password": password,
        "first_name": first_name,
        "last_name": last_name,
        "role": role,
    }
    if phone:
        body["phone"] = phone
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    data = _run(_request("POST", "/api/auth/register", json=body, headers=headers))
    _print_session(data, show_token=True)


@cli.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
def create_admin(email, password, first_name, last_name):
    """Bootstrap the first admin account (only works once)."""
    body = {
        "email": email,
        "password": password,
        "first_name": first_name,
        "last_name": last_name,
    }
    data = _run(_request("POST", "/api/auth/create-admin", json=body))
    click.secho("Admin account created.", fg="green")
    _print_session(data, show_token=True)


@cli.command()
@click.option("--token", envvar="LEARNERCIRCLE_TOKEN", default=None)
@click.option("--json", "as_json", is_flag=True, help="Print the raw profile.")
def whoami(token, as_json):
    """Show the profile behind a token."""
    data = _run(_request("GET", "/api/auth/profile", headers=_auth_headers(token)))
    if as_json:
        click.echo(_pretty_json(data["user"]))
    else:
        _print_session(data, show_token=False)


@cli.command()
@click.option("--token", envvar="LEARNERCIRCLE_TOKEN", default=None)
def refresh(token):
    """Exchange a valid token for a fresh one."""
    data = _run(_request("POST", "/api/auth/refresh", headers=_auth_headers(token)))
    click.echo(data["token"])


def main():
    cli()


if __name__ == "__main__":
    main()
