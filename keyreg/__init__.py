"""keyreg - register an SSH public key on a remote host for passwordless login."""
