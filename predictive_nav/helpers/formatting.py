""" Module for providing string and number formatting helper functions. """

import math


def snake_to_camel(snake_title: str):
    """ Takes a title in snake case and returns a string of that title in camel case.
        For instance `"hello_world"` -> `"helloWorld"` """
    components = snake_title.split('_')
    camel_case_str = components[0] + \
        ''.join(word.title() for word in components[1:])
    return camel_case_str


def camelise_keys(data: dict):
    """ Returns a copy of `data` with every top level key converted from snake case to camel case. """
    return {snake_to_camel(key): value for key, value in data.items()}


def round_half_up(value: float) -> int:
    """ Rounds a non-negative number to the nearest integer, with halves going up (`62.5` -> `63`).
        Python's `round` would give `62` here. """
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """ Returns `part` as a whole-number percentage of `whole`, or 0 when `whole` is not positive. """
    if whole <= 0:
        return 0
    return round_half_up(part * 100 / whole)


def clamp_seconds(value, upper: int) -> int:
    """ Coerces a dwell time into whole seconds between 0 and `upper`. Values that aren't finite count as 0. """
    if isinstance(value, int):
        return min(max(value, 0), upper)
    if not math.isfinite(value):
        return 0
    return min(round_half_up(max(value, 0)), upper)
