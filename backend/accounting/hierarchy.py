# accounting/hierarchy.py
"""
Chart-of-accounts hierarchy queries.

Accounts are flat rows with a ``parent_code`` back-reference. The shape of
the tree is rebuilt on demand from a ``code -> account`` map that holds all
of a company's accounts in memory (bounded per company).

An account whose ``parent_code`` does not resolve is treated as a root, so
a tree can always be produced.
"""

from collections import defaultdict
from typing import Iterable, Optional

from accounting.exceptions import AccountNotFound
from accounting.models import Account


class AccountForest:
    """In-memory view of one company's chart of accounts."""

    def __init__(self, accounts: Iterable[Account]):
        self.by_code: dict[str, Account] = {a.code: a for a in accounts}
        self._children: dict[str, list[str]] = defaultdict(list)
        for code in sorted(self.by_code):
            parent = self.parent_code_of(code)
            if parent is not None:
                self._children[parent].append(code)

    @classmethod
    def for_company(cls, company) -> "AccountForest":
        return cls(Account.objects.filter(company=company).order_by("code"))

    def __contains__(self, code) -> bool:
        return code in self.by_code

    def __len__(self) -> int:
        return len(self.by_code)

    def get(self, code: str) -> Account:
        try:
            return self.by_code[code]
        except KeyError:
            raise AccountNotFound(f"Account {code} not found.", details={"code": code})

    def parent_code_of(self, code: str) -> Optional[str]:
        """Resolved parent code; orphaned references degrade to None."""
        parent = self.by_code[code].parent_code
        if parent and parent in self.by_code and parent != code:
            return parent
        return None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def roots(self) -> list[Account]:
        return [a for code, a in sorted(self.by_code.items()) if self.parent_code_of(code) is None]

    def leaves(self) -> list[Account]:
        return [a for code, a in sorted(self.by_code.items()) if not self._children.get(code)]

    def children(self, code: str) -> list[Account]:
        self.get(code)
        return [self.by_code[c] for c in self._children.get(code, [])]

    def ancestors(self, code: str) -> list[Account]:
        """Ancestors ordered from the root down to the immediate parent."""
        self.get(code)
        chain = []
        seen = {code}
        parent = self.parent_code_of(code)
        while parent is not None and parent not in seen:
            seen.add(parent)
            chain.append(self.by_code[parent])
            parent = self.parent_code_of(parent)
        chain.reverse()
        return chain

    def descendants(self, code: str) -> list[Account]:
        """All accounts below ``code`` (depth-first, iterative)."""
        self.get(code)
        result = []
        seen = {code}
        stack = list(reversed(self._children.get(code, [])))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            result.append(self.by_code[current])
            stack.extend(reversed(self._children.get(current, [])))
        return result

    def descendant_codes(self, code: str) -> set[str]:
        return {a.code for a in self.descendants(code)}

    def subtree_codes(self, code: str) -> set[str]:
        return {code} | self.descendant_codes(code)

    def path(self, code: str) -> list[Account]:
        return self.ancestors(code) + [self.get(code)]

    def level(self, code: str) -> int:
        """Depth of the account; roots are level 0."""
        return len(self.ancestors(code))

    def would_create_cycle(self, code: str, new_parent_code: str) -> bool:
        return new_parent_code == code or new_parent_code in self.descendant_codes(code)

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def tree(self) -> list[dict]:
        """Nested representation: [{account, level, children: [...]}, ...]."""
        def build(code: str, level: int, seen: frozenset) -> dict:
            seen = seen | {code}
            return {
                "account": self.by_code[code],
                "level": level,
                "children": [
                    build(child, level + 1, seen)
                    for child in self._children.get(code, [])
                    if child not in seen
                ],
            }

        return [build(root.code, 0, frozenset()) for root in self.roots()]

    def statistics(self) -> dict:
        by_type = {t: 0 for t in Account.AccountType.values}
        for account in self.by_code.values():
            by_type[account.account_type] = by_type.get(account.account_type, 0) + 1
        return {
            "total": len(self.by_code),
            "by_type": by_type,
            "root_count": len(self.roots()),
            "leaf_count": len(self.leaves()),
        }
