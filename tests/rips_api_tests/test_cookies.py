from __future__ import annotations

import os

import responses

from rips_api.client import Client
from rips_api.cookies import FileCookieStore, MemoryCookieStore


def test_temporary_cookie_file_removed_on_close():
    store = FileCookieStore()
    assert store.temporary
    assert os.path.exists(store.path)
    store.close()
    assert not os.path.exists(store.path)


def test_caller_cookie_file_is_kept(tmp_path):
    path = tmp_path / "cookies.txt"
    store = FileCookieStore(str(path))
    store.save()
    store.close()
    assert path.exists()


@responses.activate
def test_session_cookie_persisted_to_file_and_reused(tmp_path, rips_base_url):
    path = str(tmp_path / "cookies.txt")
    responses.add(responses.POST, f"{rips_base_url}/login/", json={}, status=200,
                  headers={"Set-Cookie": "PHPSESSID=filetoken; Path=/"})
    responses.add(responses.GET, f"{rips_base_url}/status/", json={}, status=200)

    with Client(rips_base_url, cookie_store=FileCookieStore(path)) as first:
        first.login({"name": "alice", "password": "pw"})
    assert "filetoken" in (tmp_path / "cookies.txt").read_text(encoding="utf-8")

    # A second client on the same file is already authenticated
    with Client(rips_base_url, cookie_store=FileCookieStore(path)) as second:
        second.get_status()
    assert "PHPSESSID=filetoken" in responses.calls[1].request.headers["Cookie"]


def test_memory_store_is_default(client):
    assert isinstance(client.pipeline.cookie_store, MemoryCookieStore)
    assert client.pipeline.session.cookies is client.pipeline.cookie_store.jar
