"""
SecureVault
Copyright (c) 2025

THREAT MODEL:
A single-user vault protected by one master passphrase. Secrets are
decrypted in process memory while a session is open; an attacker able to run
code on the host during that time is out of scope. Key material owned by this
package is zeroed when a session closes, but Python may keep transient
immutable copies until they are garbage collected.
"""
