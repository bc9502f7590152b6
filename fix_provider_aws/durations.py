import operator
from datetime import timedelta
from functools import reduce
from typing import List, Optional, Union

import parsy
from parsy import Parser, regex, string, whitespace

# Order matters: longest name first, so "min" is not parsed as "m" + "in".
# | output | accepted names | number of seconds |
time_units = [
    ("d", ["days", "day", "d"], 24 * 3600),
    ("h", ["hours", "hour", "h"], 3600),
    ("min", ["minutes", "minute", "min", "m"], 60),
    ("s", ["seconds", "second", "s"], 1),
]


def lexeme(p: Parser) -> Parser:
    return p << whitespace.optional()


number_p = lexeme(regex(r"\d+(\.\d+)?")).map(float)
unit_p: Parser = reduce(
    lambda x, y: x | y,
    [lexeme(string(name)).result(seconds) for _, names, seconds in time_units for name in names],
)
single_duration_p = parsy.seq(number_p, unit_p).combine(operator.mul)
combine_p = lexeme(string(",") | string("and"))
duration_p = whitespace.optional() >> single_duration_p.sep_by(combine_p.optional(), min=1).map(sum)


def parse_duration(ds: Union[str, int, float]) -> timedelta:
    """
    Parse a human readable duration like `10min`, `1h30m` or `2 hours and 5 seconds`.
    Plain numbers are interpreted as seconds.
    """
    if isinstance(ds, (int, float)):
        return timedelta(seconds=ds)
    try:
        return timedelta(seconds=duration_p.parse(ds.strip()))
    except parsy.ParseError as e:
        raise ValueError(f"Invalid duration: {ds}") from e


def duration_str(duration: timedelta, precision: Optional[int] = None) -> str:
    """
    Render a timedelta in short unit syntax, e.g. 1h30min or 45s.
    :param precision: the maximum number of units to render, starting with the biggest one.
    """
    seconds = int(duration.total_seconds())
    if seconds == 0:
        return "0s"
    parts: List[str] = []
    for unit, _, factor in time_units:
        if seconds >= factor:
            num, seconds = divmod(seconds, factor)
            parts.append(f"{num}{unit}")
    return "".join(parts[:precision] if precision else parts)
