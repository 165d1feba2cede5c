import posixpath
from typing import List

from pydantic import BaseModel

from omamount.errors import ConfigMissingError

FSTAB_BEGIN = "# BEGIN OMAMOUNT"
FSTAB_END = "# END OMAMOUNT"
FSTAB_COMMENT = "# Managed by omamount: changes inside this block are overwritten"

FS_TYPE = "cifs"
CLIENT_TOOL = "mount.cifs"
CLIENT_PACKAGE = "cifs-utils"

DEFAULT_MOUNT_ROOT = "/mnt/nas"
DEFAULT_CREDENTIALS_FILE = "/etc/samba/credentials/omamount.creds"
FALLBACK_UID = 1000
FALLBACK_GID = 1000


class ShareSpec(BaseModel):
    name: str


class MountEntry(BaseModel):
    share: str
    remote: str
    mount_point: str
    fs_type: str = FS_TYPE
    options: List[str] = []
    dump_freq: int = 0
    pass_no: int = 0

    def to_line(self) -> str:
        return (
            f"{self.remote} {self.mount_point} {self.fs_type} "
            f"{','.join(self.options)} {self.dump_freq} {self.pass_no}"
        )


class DesiredConfig(BaseModel):
    """Declarative description of the NAS shares this host should mount."""

    endpoint: str = ""
    mount_root: str = DEFAULT_MOUNT_ROOT
    shares: List[ShareSpec] = []
    credential_path: str = DEFAULT_CREDENTIALS_FILE
    owner_uid: int = FALLBACK_UID
    owner_gid: int = FALLBACK_GID

    @property
    def is_complete(self) -> bool:
        return bool(self.endpoint) and len(self.shares) > 0

    def require_complete(self):
        if not self.is_complete:
            raise ConfigMissingError("Missing config (NAS host and/or shares).")

    @property
    def remote_prefix(self) -> str:
        return f"//{self.endpoint}/"

    @property
    def credential_dir(self) -> str:
        return posixpath.dirname(self.credential_path)

    def mount_point(self, share: str) -> str:
        return posixpath.join(self.mount_root, share)

    def mount_options(self) -> List[str]:
        return [
            f"credentials={self.credential_path}",
            "vers=3.1.1",
            "seal",
            f"uid={self.owner_uid}",
            f"gid={self.owner_gid}",
            "file_mode=0664",
            "dir_mode=0775",
            "nosuid",
            "nodev",
            "_netdev",
            "nofail",
            "noauto",
            "x-systemd.automount",
            "x-systemd.idle-timeout=600",
            "x-systemd.requires=network-online.target",
            "x-systemd.after=network-online.target",
            "mfsymlinks",
        ]

    def mount_entries(self) -> List[MountEntry]:
        options = self.mount_options()
        return [
            MountEntry(
                share=share.name,
                remote=f"{self.remote_prefix}{share.name}",
                mount_point=self.mount_point(share.name),
                options=options,
            )
            for share in self.shares
        ]
