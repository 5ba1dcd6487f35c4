"""
LRU caching that tests can reset.

Curriculum definitions are read from YAML files that never change while the
process is running, so we keep the parsed result around. Tests point the app at
different curriculum directories though, and need a way to drop everything that
was cached by a previous test.
"""
import functools

_cached_functions = []


def lru_cache(*args, **kwargs):
    """
    Same as functools.lru_cache, but remembers the wrapped function so that
    clear_lru_caches() can reset it.
    """
    def decorator(fn):
        cached_fn = functools.lru_cache(*args, **kwargs)(fn)
        _cached_functions.append(cached_fn)
        return cached_fn
    return decorator


def clear_lru_caches():
    """
    Empty every cache created through our lru_cache decorator.
    """
    for cached_fn in _cached_functions:
        cached_fn.cache_clear()
