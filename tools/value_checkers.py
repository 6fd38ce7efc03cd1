"""Predicates for guarding helper inputs."""


def is_non_empty_string(x):
    return isinstance(x, str) and x != ""


def is_positive_natural_number(x):
    # bool is an int subclass but not a number here
    return isinstance(x, int) and not isinstance(x, bool) and x >= 1
