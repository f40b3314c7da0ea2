# rbacmatch

Building blocks for evaluating access-control policies: the matching
operators that policy matchers call, helpers for working with matcher text
and policy rules, and a small LRU cache. It has no runtime dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Matching operators

`rbacmatch.builtin_operators` holds the operators:

```python
from rbacmatch.builtin_operators import (
    key_match, key_match2, key_match3, key_match4, key_match5,
    key_get, key_get2, key_get3,
    regex_match, ip_match, glob_match, time_match,
)

key_match("/foo/bar", "/foo/*")                                 # True
key_match2("/resource1", "/:resource")                          # True
key_match3("/myid/using/myresid", "/{id}/using/{resId}")        # True
key_match4("/parent/123/child/456", "/parent/{id}/child/{id}")  # False
key_match5("/foo/bar?status=1", "/foo/bar")                     # True

key_get("/foo/bar", "/foo/*")                                   # "bar"
key_get2("/resource1", "/:resource", "resource")                # "resource1"
key_get3("/api/project1_admin/info", "/api/{proj}_admin/info", "proj")  # "project1"

regex_match("/topic/edit/123", "/topic/edit/[0-9]+")            # True
ip_match("192.168.2.123", "192.168.2.0/24")                     # True
glob_match("/prefix/foo/bar", "**/foo/*")                       # True
time_match("_", "9999-12-30 00:00:00")                          # True
```

Notes on behaviour:

- `key_match` treats everything from the first `*` in the pattern as "any
  suffix". `key_match2`, `key_match3` and `key_match5` turn `/*` into "any
  rest of the path" and `:name` or `{name}` into one path segment, and match
  the whole key. `key_match5` drops a query string (`?...`) from the key
  first. `key_match4` also requires repeated `{name}` parameters to bind the
  same value.
- `key_get`, `key_get2` and `key_get3` return the matched part, or `""` when
  the key does not match or the parameter is not in the pattern.
- `regex_match` succeeds if the expression matches anywhere in the key.
- `ip_match` compares an address with an address or a CIDR block; an invalid
  argument raises `ValueError`.
- `glob_match` supports `*` and `?` within a path segment, `**` for any
  number of segments, `[...]` classes, `{a,b}` alternatives and `\` escapes.
  A malformed pattern raises `ValueError`.
- `time_match` checks whether the current UTC time lies strictly between two
  bounds written as `YYYY-MM-DD HH:MM:SS`; `"_"` leaves a bound open. A
  malformed bound raises `ValueError`.

Each operator has a `*_func(*args)` variant meant to be registered with an
expression evaluator. These check the argument count (and, except for
`time_match_func`, that every argument is a string) and raise
`ArgumentError`, a subclass of `ValueError`, with messages such as
`"keyMatch: expected 2 arguments, but got 1"` or
`"keyMatch: argument must be a string"`.

`generate_g_function(rm)` and `generate_conditional_g_function(crm)` build
the `g(name1, name2[, domain])` function from any object with a
`has_link(name1, name2, *domains)` method. Without a role manager (`None`)
the function compares the two names; an exception from `has_link` counts as
no link. The function from `generate_g_function` memoises its answers.

## Utilities

`rbacmatch.util` holds helpers for matcher text and policy rules:

```python
from rbacmatch.util import escape_assertion, remove_comments, get_eval_value, replace_eval_with_map

escape_assertion("r.attr.value == p.attr")                      # "r_attr.value == p_attr"
remove_comments("r.act == p.act # comment")                     # "r.act == p.act"
get_eval_value("eval(a) && eval(b)")                            # ["a", "b"]
replace_eval_with_map("eval(rule1) && c", {"rule1": "a == b"})  # "a == b && c"
```

Also available: `has_eval`, `replace_eval`, `json_to_map` (raises
`ValueError` unless the text is a JSON object), comparisons of rule lists
(`array_equals`, `array_2d_equals`, `sorted_array_2d_equals`, `set_equals`,
`set_equals_int`, `set_2d_equals`), `sort_array_2d` (in place),
de-duplication (`array_remove_duplicates` in place,
`remove_duplicate_element` returning a new list), `set_subtract`,
`join_slice`, `array_to_string` and `params_to_string`.

## LRU cache

```python
from rbacmatch.util import LRUCache, SyncLRUCache

cache = LRUCache(3)
cache.put("one", 1)
cache.get("one")          # 1
cache.get("missing", 0)   # 0
"one" in cache            # True
len(cache)                # 1
cache.values()            # [1], least recently used first
```

When full, `put` evicts the least recently used entry. Putting a key that
is already cached marks it as recently used and keeps its stored value.
`SyncLRUCache` has the same interface and guards `get` and `put` with a
lock, for use from several threads.

## What it does not do

This package supplies operators and helpers only. It has no policy
enforcer, no model or policy file loading, no policy storage and no role
manager of its own: the `g` functions work with a role manager you provide.