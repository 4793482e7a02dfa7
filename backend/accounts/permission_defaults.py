# accounts/permission_defaults.py

ROLE_DEFAULTS = {
    "OWNER": {
        # Company
        "company.view",
        "company.manage_users",

        # Chart of accounts
        "accounts.view",
        "accounts.manage",

        # Journal
        "journal.view",
        "journal.create",
        "journal.edit_draft",
        "journal.post",
        "journal.reverse",
        "journal.import",

        # Reports
        "reports.view",
        "reports.export",
        "reports.configure",

        # Recurring postings
        "recurring.manage",
    },
    "ACCOUNTANT": {
        "company.view",

        "accounts.view",
        "accounts.manage",
        "journal.view",
        "journal.create",
        "journal.edit_draft",
        "journal.post",
        "journal.reverse",
        "journal.import",

        "reports.view",
        "reports.export",
        "reports.configure",

        "recurring.manage",
    },
    "STAFF": {
        "company.view",

        "accounts.view",
        "journal.view",
        "journal.create",
        "journal.edit_draft",
        "journal.import",

        "reports.view",
    },
    "VIEWER": {
        "company.view",

        "accounts.view",
        "journal.view",

        "reports.view",
    },
}

def all_permission_codes() -> set[str]:
    codes: set[str] = set()
    for s in ROLE_DEFAULTS.values():
        codes |= set(s)
    return codes
