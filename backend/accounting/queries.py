# accounting/queries.py
"""
Read-side queries over accounts and journal entries.

Nothing here mutates state; views call these directly.
"""

from django.core.paginator import EmptyPage, Paginator
from django.db.models import Q

from accounts.authz import ActorContext, require
from accounting.balances import to_date
from accounting.hierarchy import AccountForest
from accounting.models import JournalEntry

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def visible_entries(actor: ActorContext):
    """
    Journal entries the actor may see.

    Actors without posting rights see their own entries plus every
    POSTED entry of the company.
    """
    qs = JournalEntry.objects.filter(company=actor.company)
    if not actor.is_elevated:
        qs = qs.filter(Q(created_by=actor.user) | Q(status=JournalEntry.Status.POSTED))
    return qs


def filter_entries(qs, status: str = None, date_from=None, date_to=None, search: str = None):
    if status:
        qs = qs.filter(status=status)
    if date_from:
        qs = qs.filter(date__gte=to_date(date_from))
    if date_to:
        qs = qs.filter(date__lte=to_date(date_to))
    if search:
        qs = qs.filter(Q(reference__icontains=search) | Q(description__icontains=search))
    return qs


def paginate(qs, page=1, page_size=DEFAULT_PAGE_SIZE) -> dict:
    """Page a queryset; returns {"results", "page", "page_size", "total", "total_pages"}."""
    try:
        page = max(int(page or 1), 1)
        page_size = min(max(int(page_size or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
    except (TypeError, ValueError):
        page, page_size = 1, DEFAULT_PAGE_SIZE

    paginator = Paginator(qs, page_size)
    try:
        results = list(paginator.page(page).object_list)
    except EmptyPage:
        results = []
    return {
        "results": results,
        "page": page,
        "page_size": page_size,
        "total": paginator.count,
        "total_pages": paginator.num_pages,
    }


def account_journal_entries(
    actor: ActorContext,
    code: str,
    include_descendants: bool = False,
    status: str = None,
    date_from=None,
    date_to=None,
    page=1,
    page_size=DEFAULT_PAGE_SIZE,
) -> dict:
    """
    Journal entries with at least one line on the account (or, with
    ``include_descendants``, anywhere in its subtree), newest first.

    Raises AccountNotFound for an unknown code.
    """
    require(actor, "journal.view")

    forest = AccountForest.for_company(actor.company)
    forest.get(code)
    codes = forest.subtree_codes(code) if include_descendants else {code}

    qs = visible_entries(actor).filter(lines__account__code__in=codes).distinct()
    qs = filter_entries(qs, status=status, date_from=date_from, date_to=date_to)
    qs = qs.order_by("-date", "-id").prefetch_related("lines", "lines__account")
    return paginate(qs, page, page_size)
