"""
Gmail Account Manager Contract Index
====================================

AUTHORITY: This file is the SINGLE authoritative entrypoint for all
account manager contracts. Import from here, not from individual contract files.
"""

from contracts.account_contract import (
    # Test Case Index
    TEST_CASES,
    UNKNOWN_EMAIL,
    AccountCredentials,
    AccountCredentialsInvalidError,
    # Domain Types
    AccountInfo,
    AccountLifecycleContract,
    AccountRegistryContract,
    AccountsMetadata,
    CredentialsReadError,
    CredentialStoreContract,
    # Error Types
    GmailMCPError,
    IdentityLookupContract,
    InvalidAuthorizationCodeError,
    NoAccountAvailableError,
    OAuthClientFactoryContract,
    OAuthKeys,
    OAuthKeysInvalidError,
    OAuthKeysNotFoundError,
    ResolveClientContract,
    # Contracts (Protocols)
    StartupContract,
)

__all__ = [
    # Domain Types
    "UNKNOWN_EMAIL",
    "AccountInfo",
    "AccountsMetadata",
    "AccountCredentials",
    "OAuthKeys",
    # Error Types
    "GmailMCPError",
    "OAuthKeysNotFoundError",
    "OAuthKeysInvalidError",
    "NoAccountAvailableError",
    "AccountCredentialsInvalidError",
    "InvalidAuthorizationCodeError",
    "CredentialsReadError",
    # Contracts
    "StartupContract",
    "CredentialStoreContract",
    "OAuthClientFactoryContract",
    "AccountRegistryContract",
    "AccountLifecycleContract",
    "ResolveClientContract",
    "IdentityLookupContract",
    # Test Traceability
    "TEST_CASES",
    # Functions
    "audit_contract_coverage",
]


def audit_contract_coverage() -> dict:
    """
    Audit which contract clauses have test coverage.

    Returns dict with:
    - covered: clauses with at least one test
    - uncovered: clauses with no tests
    - test_count: total tests defined
    """
    covered_clauses = set()
    for test_name, test_info in TEST_CASES.items():
        for clause in test_info.get("enforces", []):
            covered_clauses.add(clause)

    all_clauses = set()

    # Startup clauses
    all_clauses.update(
        [
            "PRE-STARTUP-01",
            "PRE-STARTUP-02",
            "POST-STARTUP-01",
            "POST-STARTUP-02",
            "INV-STARTUP-01",
            "INV-STARTUP-02",
            "ERRORS: OAUTH_KEYS_NOT_FOUND",
            "ERRORS: OAUTH_KEYS_INVALID",
        ]
    )

    # Credential store clauses
    all_clauses.update(
        [
            "POST-CREDSTORE-01",
            "POST-CREDSTORE-02",
            "POST-CREDSTORE-03",
            "INV-CREDSTORE-01",
            "INV-CREDSTORE-02",
            "ERRORS: CREDENTIALS_UNREADABLE",
        ]
    )

    # OAuth factory clauses
    all_clauses.update(
        [
            "POST-OAUTH-01",
            "POST-OAUTH-02",
            "INV-OAUTH-01",
            "INV-OAUTH-02",
            "ERRORS: INVALID_CODE",
        ]
    )

    # Registry clauses
    all_clauses.update(
        [
            "POST-REGISTRY-01",
            "POST-REGISTRY-02",
            "POST-REGISTRY-03",
            "INV-REGISTRY-01",
            "INV-REGISTRY-02",
            "INV-REGISTRY-03",
        ]
    )

    # Lifecycle clauses
    all_clauses.update(
        [
            "POST-ADD-01",
            "POST-ADD-02",
            "POST-REMOVE-01",
            "POST-REMOVE-02",
            "POST-REMOVE-03",
            "POST-UPDATE-01",
            "INV-ADD-01",
            "INV-REMOVE-01",
        ]
    )

    # Resolution and identity clauses
    all_clauses.update(
        [
            "POST-RESOLVE-01",
            "POST-RESOLVE-02",
            "ERRORS: NO_ACCOUNT",
            "ERRORS: ACCOUNT_INVALID",
            "POST-IDENTITY-01",
            "POST-IDENTITY-02",
            "INV-IDENTITY-01",
        ]
    )

    # Global invariants
    all_clauses.update(
        [
            "INV-GLOBAL-01",
            "INV-GLOBAL-02",
            "INV-GLOBAL-03",
        ]
    )

    uncovered = all_clauses - covered_clauses

    return {
        "covered": sorted(covered_clauses),
        "uncovered": sorted(uncovered),
        "test_count": len(TEST_CASES),
        "coverage_pct": round(len(covered_clauses) / len(all_clauses) * 100, 1),
    }
