from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping

from notelinks_api.domain.exceptions import NoteLookupError
from notelinks_api.parsing import LinkOccurrence

logger = logging.getLogger("notelinks.resolver")

ExistenceLookup = Callable[[set[str]], Awaitable["Mapping[str, bool] | Iterable[str]"]]


def titles_of(occurrences: Iterable[LinkOccurrence]) -> set[str]:
    return {occ.target_title for occ in occurrences}


async def resolve_existence(titles: Iterable[str], lookup: ExistenceLookup) -> dict[str, bool]:
    """Map every title to whether a note with exactly that title exists.

    ``lookup`` is awaited once with the distinct titles and may answer with a
    ``title -> bool`` mapping or with the titles that exist. Titles it does not
    report as existing resolve to ``False``. Lookup failures are raised as
    ``LookupError`` and never turned into a default answer.
    """
    wanted = set(titles)
    if not wanted:
        return {}

    try:
        answer = await lookup(set(wanted))
    except LookupError:
        raise
    except Exception as e:
        logger.warning("existence_lookup_failed", extra={"titles": len(wanted), "error": repr(e)})
        raise NoteLookupError("lookup_failed", str(e)) from e

    if isinstance(answer, Mapping):
        existing = {title for title, present in answer.items() if present}
    else:
        existing = set(answer)

    return {title: title in existing for title in wanted}
