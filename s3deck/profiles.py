#!/usr/bin/env python3
"""
Connection profile storage
Named connection settings saved as JSON in the user's home directory
"""

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from .errors import S3DeckError, ErrorKind
from .types import ConnectionConfig

DEFAULT_PROFILES_FILE = os.path.join(os.path.expanduser("~"), ".s3deck_profiles.json")

PROVIDER_TYPES = ('aws', 'minio', 'digitalocean', 'wasabi', 'backblaze', 'other')


@dataclass
class ConnectionProfile:
    name: str
    config: ConnectionConfig
    provider_type: str = 'other'
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def __post_init__(self):
        if self.provider_type not in PROVIDER_TYPES:
            raise S3DeckError(f"Unknown provider type: {self.provider_type}", ErrorKind.INVALID_INPUT)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'ConnectionProfile':
        if not isinstance(data.get('config'), dict):
            raise S3DeckError(f"Profile '{name}' has no connection settings", ErrorKind.CONFIGURATION)
        kwargs = {}
        if data.get('created_at'):
            kwargs['created_at'] = data['created_at']
        return cls(
            name=name,
            config=ConnectionConfig.from_dict(data['config']),
            provider_type=data.get('provider_type', 'other'),
            **kwargs
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'config': self.config.to_dict(),
            'provider_type': self.provider_type,
            'created_at': self.created_at,
        }


class ProfileStore:
    """Loads and saves connection profiles keyed by name"""

    def __init__(self, profiles_file: Optional[str] = None, verbose: bool = False):
        self.profiles_file = profiles_file or DEFAULT_PROFILES_FILE
        self.verbose = verbose
        self.profiles: Dict[str, ConnectionProfile] = {}

    def load(self) -> Dict[str, ConnectionProfile]:
        """Load profiles from file; a missing file means no profiles"""
        if not os.path.exists(self.profiles_file):
            if self.verbose:
                print(f"[VERBOSE] No profiles file at {self.profiles_file}")
            self.profiles = {}
            return self.profiles

        try:
            with open(self.profiles_file, 'r') as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise S3DeckError(f"Could not load profiles: {e}", ErrorKind.CONFIGURATION) from e

        if not isinstance(raw, dict):
            raise S3DeckError("Could not load profiles: file does not contain a profile mapping",
                              ErrorKind.CONFIGURATION)

        self.profiles = {name: ConnectionProfile.from_dict(name, data) for name, data in raw.items()}

        if self.verbose:
            print(f"[VERBOSE] Loaded {len(self.profiles)} profiles from {self.profiles_file}")

        return self.profiles

    def save(self) -> None:
        """Save profiles to file"""
        data = {name: profile.to_dict() for name, profile in sorted(self.profiles.items())}
        try:
            with open(self.profiles_file, 'w') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise S3DeckError(f"Could not save profiles: {e}", ErrorKind.LOCAL_IO) from e

    def names(self) -> List[str]:
        return sorted(self.profiles.keys())

    def get(self, name: str) -> ConnectionProfile:
        try:
            return self.profiles[name]
        except KeyError:
            raise S3DeckError(f"Profile '{name}' does not exist", ErrorKind.CONFIGURATION)

    def add(self, profile: ConnectionProfile, overwrite: bool = False) -> None:
        if profile.name in self.profiles and not overwrite:
            raise S3DeckError(f"Profile '{profile.name}' already exists", ErrorKind.INVALID_INPUT)
        self.profiles[profile.name] = profile
        self.save()

    def remove(self, name: str) -> None:
        self.get(name)
        del self.profiles[name]
        self.save()

    def import_file(self, filename: str, name: str, overwrite: bool = False) -> ConnectionProfile:
        """Import a single exported profile from a JSON file under a new name"""
        try:
            with open(filename, 'r') as f:
                imported_data = json.load(f)
        except (OSError, ValueError) as e:
            raise S3DeckError(f"Could not import profile: {e}", ErrorKind.LOCAL_IO) from e

        if not isinstance(imported_data, dict):
            raise S3DeckError("The selected file does not contain valid profile data.", ErrorKind.INVALID_INPUT)

        profile = ConnectionProfile.from_dict(name, imported_data)
        self.add(profile, overwrite=overwrite)
        return profile

    def export_profile(self, name: str, filename: str) -> None:
        profile = self.get(name)
        try:
            with open(filename, 'w') as f:
                json.dump(profile.to_dict(), f, indent=2)
        except OSError as e:
            raise S3DeckError(f"Could not export profile: {e}", ErrorKind.LOCAL_IO) from e
