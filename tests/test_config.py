"""Tests for configuration and command-line parsing."""

import argparse
import dataclasses

import pytest

from static_server.config import Config, normalize_aliases, parse_address, parse_args


# Testing strategy:
#
# Partition on arguments: none given, every flag given, short flags
# Partition on address: IPv4, bracketed IPv6, host name, missing port,
#   bad port, port out of range, unbracketed IPv6
# Partition on aliases: none, with leading '/', without, duplicates


class TestDefaults:

    def test_no_configuration_variant(self):
        config = Config()
        assert config.host == '127.0.0.1'
        assert config.port == 8080
        assert config.root_dir == 'Public'
        assert config.index_file == 'index.html'
        assert config.index_aliases == frozenset({'/'})
        assert config.timeout is None

    def test_parse_no_args_matches_defaults(self):
        assert parse_args([]) == Config()

    def test_config_is_immutable(self):
        config = Config()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.root_dir = 'elsewhere'

    def test_bind_address(self):
        assert Config().bind_address == '127.0.0.1:8080'
        assert Config(host='::1', port=80).bind_address == '[::1]:80'


class TestAliases:

    def test_root_always_included(self):
        assert normalize_aliases([]) == frozenset({'/'})

    def test_leading_slash_added(self):
        assert normalize_aliases(['about', '/home']) == frozenset({'/', '/about', '/home'})

    def test_duplicates_collapse(self):
        assert normalize_aliases(['about', '/about', '/']) == frozenset({'/', '/about'})


class TestParseAddress:

    def test_ipv4(self):
        assert parse_address('0.0.0.0:9000') == ('0.0.0.0', 9000)

    def test_ipv6(self):
        assert parse_address('[::1]:8080') == ('::1', 8080)

    @pytest.mark.parametrize('text', [
        'localhost:8080',
        '127.0.0.1',
        '127.0.0.1:',
        '127.0.0.1:http',
        '127.0.0.1:65536',
        '127.0.0.1:-1',
        '::1:8080',
        '[127.0.0.1]:80',
        ':8080',
        '',
    ])
    def test_invalid(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_address(text)


class TestParseArgs:

    def test_all_flags(self):
        config = parse_args([
            '--address', '0.0.0.0:3000',
            '--dir', 'site',
            '--index', 'home.htm',
            '--paths', 'about', '/contact',
            '--timeout', '2.5',
        ])
        assert config.host == '0.0.0.0'
        assert config.port == 3000
        assert config.root_dir == 'site'
        assert config.index_file == 'home.htm'
        assert config.index_aliases == frozenset({'/', '/about', '/contact'})
        assert config.timeout == 2.5

    def test_short_flags(self):
        config = parse_args(['-a', '127.0.0.1:81', '-d', 'www', '-i', 'main.html', '-p', 'x'])
        assert (config.host, config.port) == ('127.0.0.1', 81)
        assert config.root_dir == 'www'
        assert config.index_file == 'main.html'
        assert config.index_aliases == frozenset({'/', '/x'})

    def test_paths_flag_without_values(self):
        assert parse_args(['--paths']).index_aliases == frozenset({'/'})

    def test_bad_address_exits(self, capsys):
        with pytest.raises(SystemExit) as exc:
            parse_args(['--address', 'not-an-address'])
        assert exc.value.code != 0
        assert 'not-an-address' in capsys.readouterr().err

    @pytest.mark.parametrize('value', ['0', '-1', 'soon'])
    def test_bad_timeout_exits(self, value):
        with pytest.raises(SystemExit):
            parse_args(['--timeout', value])
