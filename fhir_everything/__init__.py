"""FHIR $everything service: reference closure engine and HTTP API."""

__version__ = "1.0.0"
