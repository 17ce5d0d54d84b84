#!/usr/bin/env python3
"""
S3 Deck command-line front end
Runs backend commands against saved profiles or explicit connection settings
"""

import sys
import json
import argparse
from typing import List, Dict, Any, Optional

from s3deck import (
    COMMANDS,
    ConnectionConfig,
    ConnectionProfile,
    ErrorKind,
    ProfileStore,
    S3DeckError,
    invoke,
    translate_error,
)
from s3deck.commands import REQUEST_TYPES
from s3deck.profiles import PROVIDER_TYPES
from s3deck.types import DEFAULT_REGION


def add_connection_arguments(parser: argparse.ArgumentParser):
    """Flags describing a connection, shared by 'run' and 'profiles add'"""
    parser.add_argument('--endpoint', default='', help='Endpoint host, e.g. localhost:9000')
    parser.add_argument('--access-key', help='Access key')
    parser.add_argument('--secret-key', help='Secret key')
    parser.add_argument('--region', default=DEFAULT_REGION, help='Region (default: %(default)s)')
    parser.add_argument('--default-bucket', help='Default bucket stored with the connection')
    parser.add_argument('--no-ssl', action='store_true', help='Use http:// for the endpoint')
    parser.add_argument('--path-style', action='store_true', help='Use path-style addressing')
    parser.add_argument('--connect-timeout', type=float, help='Connect timeout in seconds')
    parser.add_argument('--read-timeout', type=float, help='Read timeout in seconds')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='S3 Deck - Run commands against S3-compatible storage')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose output for connection debugging')
    parser.add_argument('--profiles-file', help='Profiles file (default: ~/.s3deck_profiles.json)')

    subparsers = parser.add_subparsers(dest='action', required=True)

    run_parser = subparsers.add_parser('run', help='Run a backend command')
    run_parser.add_argument('command', choices=sorted(COMMANDS.keys()))
    run_parser.add_argument('--profile', help='Saved profile to connect with')
    add_connection_arguments(run_parser)
    run_parser.add_argument('--bucket')
    run_parser.add_argument('--key')
    run_parser.add_argument('--prefix')
    run_parser.add_argument('--file-path', help='Local file for upload_file/download_file')
    run_parser.add_argument('--data-file', help='Read upload_data bytes from this file')
    run_parser.add_argument('--source-bucket')
    run_parser.add_argument('--source-key')
    run_parser.add_argument('--dest-bucket')
    run_parser.add_argument('--dest-key')
    run_parser.add_argument('--expires-in', type=int, default=3600)
    run_parser.add_argument('--method', default='GET')

    profiles_parser = subparsers.add_parser('profiles', help='Manage saved connection profiles')
    profile_actions = profiles_parser.add_subparsers(dest='profile_action', required=True)

    profile_actions.add_parser('list', help='List saved profiles')

    add_parser = profile_actions.add_parser('add', help='Save a connection profile')
    add_parser.add_argument('name')
    add_parser.add_argument('--provider', choices=PROVIDER_TYPES, default='other')
    add_parser.add_argument('--overwrite', action='store_true')
    add_connection_arguments(add_parser)

    remove_parser = profile_actions.add_parser('remove', help='Delete a saved profile')
    remove_parser.add_argument('name')

    return parser


def config_from_args(args: argparse.Namespace) -> ConnectionConfig:
    if not args.access_key or not args.secret_key:
        raise S3DeckError("--access-key and --secret-key are required without --profile",
                          ErrorKind.INVALID_INPUT)
    return ConnectionConfig(
        endpoint=args.endpoint,
        access_key=args.access_key,
        secret_key=args.secret_key,
        region=args.region,
        bucket=args.default_bucket,
        use_ssl=not args.no_ssl,
        path_style=args.path_style,
        connect_timeout=args.connect_timeout,
        read_timeout=args.read_timeout,
    )


def build_payload(args: argparse.Namespace, store: ProfileStore) -> Dict[str, Any]:
    """Translate 'run' flags into the payload invoke() expects"""
    if args.profile:
        store.load()
        config = store.get(args.profile).config
    else:
        config = config_from_args(args)

    payload: Dict[str, Any] = {'config': config.to_dict()}

    if args.command in REQUEST_TYPES:
        if args.command == 'get_presigned_url':
            payload['request'] = {
                'bucket': args.bucket or config.bucket,
                'key': args.key,
                'expires_in': args.expires_in,
                'method': args.method,
            }
        else:
            payload['request'] = {
                'source_bucket': args.source_bucket,
                'source_key': args.source_key,
                'dest_bucket': args.dest_bucket,
                'dest_key': args.dest_key,
            }
        return payload

    if args.command not in ('connect', 'connect_to_s3', 'test_connection', 'list_buckets'):
        payload['bucket'] = args.bucket or config.bucket
    for name in ('key', 'prefix', 'file_path'):
        value = getattr(args, name)
        if value is not None:
            payload[name] = value
    if args.data_file:
        with open(args.data_file, 'rb') as f:
            payload['data'] = f.read()

    return payload


def run_profiles(args: argparse.Namespace, store: ProfileStore) -> Dict[str, Any]:
    store.load()

    if args.profile_action == 'list':
        return {
            'ok': True,
            'data': [
                {'name': name, 'provider_type': store.get(name).provider_type,
                 'endpoint': store.get(name).config.endpoint}
                for name in store.names()
            ],
        }

    if args.profile_action == 'add':
        profile = ConnectionProfile(args.name, config_from_args(args), provider_type=args.provider)
        store.add(profile, overwrite=args.overwrite)
        return {'ok': True, 'data': args.name}

    store.remove(args.name)
    return {'ok': True, 'data': args.name}


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    args = build_parser().parse_args(argv)

    if args.verbose:
        print("[VERBOSE] S3 Deck starting with verbose mode enabled")

    store = ProfileStore(args.profiles_file, verbose=args.verbose)

    try:
        if args.action == 'profiles':
            result = run_profiles(args, store)
        else:
            result = invoke(args.command, build_payload(args, store), verbose=args.verbose)
    except S3DeckError as e:
        result = {'ok': False, 'error': str(e), 'kind': e.kind.value}
    except OSError as e:
        error = translate_error(e)
        result = {'ok': False, 'error': str(error), 'kind': error.kind.value}

    print(json.dumps(result, indent=2))
    return 0 if result['ok'] else 1


if __name__ == "__main__":
    sys.exit(main())
