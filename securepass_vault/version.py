"""SecurePass Vault Meta information.
   SecurePass Vault encrypts stored credentials at rest with per-user keys.
"""
__title__ = 'securepass_vault'
__description__ = (
   'SecurePass Vault encrypts stored credentials at rest '
   'with per-user derived keys.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2025 SecurePass Vault Authors'
__author__ = 'SecurePass Vault Authors'
__license__ = 'Apache-2.0'
