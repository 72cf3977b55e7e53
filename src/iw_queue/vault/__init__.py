"""
Vault collaborators.

- files.py: VaultFiles, the DocumentStore over a notes directory
- links.py: note / block / wiki-link to queue link strings
"""
