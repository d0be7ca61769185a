# atlaskit

Building blocks for service applications: per-request database
transactions, schema migration version checks, liveness and readiness
endpoints, DNS and HTTP probes, and helpers for integration tests.

The package uses only the standard library.

## Installation

```
pip install atlaskit
```

To run the test suite:

```
pip install "atlaskit[test]"
pytest
```

## Modules

### `atlaskit.version`

`VersionRange(lower, upper)` accepts versions between both bounds,
inclusive; `VersionExactly(target)` accepts one version. Their
`validate(version)` returns the version or raises `MigrationVersionError`
with a message such as `Database at version 5, not equal to requirement of 3`.

`max_version_from(path)` scans a directory for `.sql` files named
`NN_name.up.sql` / `NN_name.down.sql` and returns a `VersionExactly` for the
highest number found (0 when there are none). A `.sql` file without an
underscore, or with a non-numeric prefix, raises `MigrationVersionError`.

`verify_migration_version(connection, validator)` runs
`SELECT * FROM schema_migrations` on a DB-API connection, reads the
`(version, dirty)` row, raises if the table is empty or the database is
dirty, and otherwise returns `validator.validate(version)`.

### `atlaskit.transaction`

A `Transaction` wraps a DB-API connection and opens at most one transaction
at a time.

- `begin(isolation_level=None)` executes `BEGIN` (or
  `BEGIN TRANSACTION ISOLATION LEVEL ...`) on a new cursor the first time it
  is called and returns that same cursor on later calls.
- `commit()` commits the connection, then runs the hooks registered with
  `add_after_commit_hook(*hooks)`; hooks take no arguments.
- `rollback()` rolls the connection back. A "database is closed" failure is
  raised as `DatabaseUnavailableError`.
- Both do nothing when no transaction is open. `copy()` gives a fresh
  transaction on the same connection with the same hooks.

`use_transaction(txn)` is a context manager that makes `txn` the current
transaction (held in a context variable); `current_transaction()` reads it
back. `begin_from_context(isolation_level=None)` begins the current
transaction and returns its cursor; it raises `TransactionMissingError` when
none is bound and `TransactionNoDatabaseError` when it has no connection.

`transactional(txn)` decorates a function so that each call runs with its
own copy of `txn` (a `Transaction` or a bare connection). The call is rolled
back if the function raises and committed otherwise; a failed commit is
raised as `RuntimeError("failed to commit transaction: ...")`.

```python
import sqlite3
from atlaskit.transaction import transactional, begin_from_context

connection = sqlite3.connect(":memory:", isolation_level=None)
connection.execute("CREATE TABLE items (id INTEGER)")

@transactional(connection)
def handler():
    cursor = begin_from_context()
    cursor.execute("INSERT INTO items VALUES (1)")

handler()
```

### `atlaskit.health`

`ChecksHandler(health_path="/healthz", ready_path="/ready", *, fail_fast=False,
pass_context=False)` serves a liveness and a readiness path. Register checks
with `add_liveness(name, check)` and `add_readiness(name, check)`; a check
fails by raising. `handle(method, path, context)` returns an `HTTPStatus`:
404 for any other path, 405 for methods other than GET, 503 if any check
failed and 200 otherwise. With `fail_fast` evaluation stops at the first
failure. With `pass_context` each check receives the context (the WSGI
environ when served through `wsgi_app`).

```python
from wsgiref.simple_server import make_server
from atlaskit.health import ChecksHandler

checks = ChecksHandler("/healthz", "/ready")
checks.add_readiness("always", lambda: None)
make_server("", 8080, checks.wsgi_app).serve_forever()
```

### `atlaskit.probes`

`dns_probe_check(host, timeout)` returns a check that resolves `host`
within `timeout` seconds. `http_get_check(url, timeout)` returns a check
that GETs `url` without following redirects and fails on any status but
200. A failing probe raises `ProbeError`.

### `atlaskit.integration`

`get_open_port_in_range(lower, upper)` returns the first port in the range
that nothing on 127.0.0.1 accepts connections on; `get_open_port()` searches
0–65535. They raise `PortError` when the lower bound is negative, when the
search ran past 65535, or when no free port was found.

`run_binary(path, *args)` starts an executable with inherited output and
returns a function that kills it and returns its exit code.
`run_container(image, docker_args, runtime_args)` runs
`docker run -d ...`, raises `RuntimeError` if that fails, and returns a
function that runs `docker kill` on the container.

## What the package does not do

It does not build SQL filter, sorting, join or full-text search clauses
from model classes, and it does not map model fields to table and column
names. It has no command-line program; everything is used as a library.