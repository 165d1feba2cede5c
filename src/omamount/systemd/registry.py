# Dictionary of services omamount integrates with.
# Key: internal name
# Value: list of possible systemd unit names (first usable match wins)

MANAGED_SERVICES = {
    "network-wait-online": [
        "NetworkManager-wait-online.service",
        "systemd-networkd-wait-online.service",
    ],
}

# A wait-online unit is only enabled when its network stack is running.
# Enabling it otherwise stalls boot until its timeout.
WAIT_ONLINE_REQUIRES = {
    "systemd-networkd-wait-online.service": "systemd-networkd.service",
}

HELPER_UNIT_NAME = "omamount-mounts.service"

HELPER_UNIT = """[Unit]
Description=Mount omamount NAS CIFS shares
After=network-online.target
Wants=network-online.target

[Service]
Type=oneshot
ExecStart=/usr/bin/mount -a -t cifs

[Install]
WantedBy=multi-user.target
"""
