"""Tests for the ``rpaasv2 acl`` command."""

from __future__ import annotations

import io
from unittest.mock import AsyncMock

import httpx
import pytest

from rpaas.cli.acl import write_access_control_list_table
from rpaas.cli.main import build_parser, main
from rpaas.client import AccessControlListClient, AllowedUpstream, RpaasNotFoundError


@pytest.fixture
def fake_client():
    client = AsyncMock()
    client.list_access_control_list.return_value = []
    return client


def _run(argv, client):
    out, err = io.StringIO(), io.StringIO()
    code = main(argv, client_factory=lambda args: client, out=out, err=err)
    return code, out.getvalue(), err.getvalue()


# ── add / remove ─────────────────────────────────────────────────────


def test_add_with_service(fake_client):
    code, out, _ = _run(
        ['acl', 'add', '-s', 'rpaasv2', '-i', 'my-proxy', '-H', 'example.com', '-p', '443'],
        fake_client,
    )

    assert code == 0
    assert out == 'Successfully added example.com:443 to rpaasv2/my-proxy ACL.\n'
    fake_client.add_access_control_list.assert_awaited_once_with('my-proxy', 'example.com', 443)
    fake_client.aclose.assert_awaited_once()


def test_add_alias_and_long_flags(fake_client):
    code, out, _ = _run(
        ['acl', 'set', '--tsuru-service-instance', 'my-proxy',
         '--hostname', '10.0.0.1', '--port', '80'],
        fake_client,
    )

    assert code == 0
    assert out == 'Successfully added 10.0.0.1:80 to my-proxy ACL.\n'


def test_remove(fake_client):
    code, out, _ = _run(
        ['acl', 'remove', '--tsuru-service', 'svc', '--instance', 'my-proxy',
         '--host', 'example.com', '-p', '8080'],
        fake_client,
    )

    assert code == 0
    assert out == 'Successfully removed example.com:8080 from svc/my-proxy ACL.\n'
    fake_client.remove_access_control_list.assert_awaited_once_with(
        'my-proxy', 'example.com', 8080,
    )


def test_remove_alias(fake_client):
    code, _, _ = _run(['acl', 'delete', '-i', 'p', '-H', 'h', '-p', '1'], fake_client)
    assert code == 0
    fake_client.remove_access_control_list.assert_awaited_once_with('p', 'h', 1)


@pytest.mark.parametrize('argv', [
    ['acl', 'add', '-H', 'h', '-p', '1'],
    ['acl', 'add', '-i', 'p', '-p', '1'],
    ['acl', 'add', '-i', 'p', '-H', 'h'],
    ['acl', 'add', '-i', 'p', '-H', 'h', '-p', 'https'],
    ['acl', 'list'],
    ['acl'],
])
def test_missing_or_invalid_flags_exit(argv):
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(argv)
    assert exc_info.value.code == 2


# ── list ─────────────────────────────────────────────────────────────


def test_list_renders_table(fake_client):
    fake_client.list_access_control_list.return_value = [
        AllowedUpstream(host='example.com', port=443),
        AllowedUpstream(host='10.0.0.1', port=0),
    ]

    code, out, _ = _run(['acl', 'list', '-i', 'my-proxy'], fake_client)

    assert code == 0
    fake_client.list_access_control_list.assert_awaited_once_with('my-proxy')
    lines = out.splitlines()
    header = next(line for line in lines if 'Host' in line)
    assert 'Port' in header
    row = next(line for line in lines if 'example.com' in line)
    assert row.split('|')[2].strip() == '443'
    row = next(line for line in lines if '10.0.0.1' in line)
    assert row.split('|')[2].strip() == ''


def test_list_get_alias_empty_prints_nothing(fake_client):
    code, out, _ = _run(['acl', 'get', '-i', 'my-proxy'], fake_client)

    assert code == 0
    assert out == ''


def test_write_table_empty():
    assert write_access_control_list_table([]) == ''


# ── errors and globals ───────────────────────────────────────────────


def test_client_error_reported(fake_client):
    fake_client.list_access_control_list.side_effect = RpaasNotFoundError()

    code, out, err = _run(['acl', 'list', '-i', 'missing'], fake_client)

    assert code == 1
    assert out == ''
    assert err == 'Error: rpaas API error 404: instance not found\n'
    fake_client.aclose.assert_awaited_once()


def test_missing_url_without_factory_exits(monkeypatch):
    monkeypatch.delenv('RPAAS_URL', raising=False)
    with pytest.raises(SystemExit) as exc_info:
        main(['acl', 'list', '-i', 'p'], err=io.StringIO())
    assert exc_info.value.code == 2


def test_globals_passed_to_factory(fake_client):
    seen = {}

    def factory(args):
        seen['url'] = args.rpaas_url
        seen['token'] = args.rpaas_token
        return fake_client

    main(
        ['--rpaas-url', 'https://rpaas.test', '--rpaas-token', 'tok', 'acl', 'get', '-i', 'p'],
        client_factory=factory,
        out=io.StringIO(),
    )

    assert seen == {'url': 'https://rpaas.test', 'token': 'tok'}


def test_url_from_environment(monkeypatch):
    monkeypatch.setenv('RPAAS_URL', 'https://env.test')
    assert build_parser().parse_args(['acl', 'get', '-i', 'p']).rpaas_url == 'https://env.test'


def test_unreachable_api_reported_without_traceback():
    def api_down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('connection refused', request=request)

    def factory(args):
        return AccessControlListClient(
            base_url=args.rpaas_url,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(api_down)),
        )

    out, err = io.StringIO(), io.StringIO()
    code = main(
        ['--rpaas-url', 'https://rpaas.test', 'acl', 'list', '-i', 'p'],
        client_factory=factory, out=out, err=err,
    )

    assert code == 1
    assert err.getvalue() == 'Error: rpaas API error 0: request failed: connection refused\n'
