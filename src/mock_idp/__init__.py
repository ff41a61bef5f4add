"""Mock SAML Identity Provider backed by an LDAP directory."""

__version__ = "0.1.0"
