# rlsindex

`rlsindex` reads the JSON save-analysis files that a compiler writes for each
crate. It builds an in-memory index over them. You can use the index to:

- look up definitions
- find references
- search symbols by name
- build documentation and source links

It has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Loading analysis data

An `AnalysisHost` (in `rlsindex.host`) gets its data through a loader. The loader is an `rlsindex.loader.AnalysisLoader`, and it names the directories to read.

`DirectoryLoader` (in `rlsindex.print_crate_id`) reads every analysis file in a single directory:

```python
from pathlib import Path

from rlsindex.host import AnalysisHost
from rlsindex.print_crate_id import DirectoryLoader

host = AnalysisHost(DirectoryLoader(Path("project/save-analysis")))
host.reload(Path("project"), Path("project"))
```

Relative file names in the data are resolved against the `base_dir` argument, which is the second argument of `reload`.

`AnalysisHost.for_target(Target.DEBUG)` uses `CargoAnalysisLoader`. `Target` is in `rlsindex.loader`. This loader reads from two places:

- `<path prefix>/target/rls/<target>/deps/save-analysis`
- the toolchain's `lib/rustlib/<host triple>/analysis` directory

It finds the toolchain root in this order:

1. the `SYSROOT` environment variable;
2. otherwise, the output of `rustc --print sysroot`.

The host triple comes from `rustc --verbose --version`. If that fails, it is taken from the name of the toolchain directory. Set `RUSTC` to use a different compiler binary.

Reloading works like this:

- `reload` rebuilds the whole index whenever the loader asks for a hard reload. `DirectoryLoader` always asks for one. `CargoAnalysisLoader` asks for one when the path prefix has changed.
- Otherwise, `reload` reads only the files that are newer than the data already loaded.
- `hard_reload` always rebuilds everything.
- The `*_with_blacklist` variants skip crates by name. A file whose name starts with `lib<name>-` is ignored.

If you already have parsed data, pass it to `reload_from_analysis`. It takes a list of `rlsindex.data.Analysis` objects, which you can create with `Analysis.from_json`.

## Querying

```python
ids = host.search_for_id("print_hello")        # exact name
definition = host.get_def(ids[0])
references = host.find_all_refs_by_id(ids[0])  # the definition comes first
spans = host.search("print_hello")             # definition and reference spans
matches = host.matching_defs("pri")            # case-insensitive prefix
```

For subsequence matching and for paging through results, use a `SymbolQuery`:

```python
from rlsindex.symbol_query import SymbolQuery

page = host.query_defs(SymbolQuery.subsequence("an").limit(20))
next_page = host.query_defs(SymbolQuery.subsequence("an").limit(20).greater_than("canopus"))
```

The following host methods take a zero-indexed `rlsindex.span.Span`:

- `goto_def`
- `id`
- `crate_local_id`
- `show_type`
- `docs`
- `doc_url`
- `src_url`
- `idents`
- `find_all_refs`

`find_all_refs(span, include_decl, force_unique_spans)` follows these rules:

- With `include_decl`, the declaration comes first.
- With `force_unique_spans`, the result is empty if any reference points at more than one definition.
- With `force_unique_spans`, the result is also empty if the definition is imported under an alias.

Other host methods:

- `symbols(file)` lists the definitions in a file.
- `def_parents`, `def_roots`, `for_each_child_def` and `find_impls` walk the definition structure.

`doc_url` and `src_url` give links only for definitions that come from standard-distribution crates. `src_url` also needs the loader to know an absolute path prefix.

When there is no answer, or no data has been loaded, the host raises `AnalysisError`.

## Command line

```
rlsindex-print-crate-id <save-analysis-dir>
```

This reads every analysis file in the directory. For each crate, it prints the crate id and the version of its data format. With no argument, it prints a usage line and exits with status 1.

## Other modules

- `rlsindex.span`: rows, columns, positions, ranges, locations and spans. Each can be zero-indexed or one-indexed, with conversions between the two.
- `rlsindex.diagnostics`: span structures from compiler JSON diagnostics.
- `rlsindex.data`: the save-analysis data model, with JSON reading and writing.
- `rlsindex.raw`: reads analysis files from the loader's directories.
- `rlsindex.lowering`: turns raw data into the per-crate index.
- `rlsindex.analysis`: the index itself.
- `rlsindex.listings`: sorted directory listings with modification times.
- `rlsindex.clippy`: parses the `RLS_CLIPPY_PREFERENCE` environment variable and adds the matching compiler arguments.
- `rlsindex.rpc`: the `Crate` and `Edition` records, and encoding and decoding of input-file maps to and from plain dictionaries.

## What it does not do

This package does not:

- run a language server;
- invoke the compiler to produce analysis data (it only runs `rustc` to locate the toolchain);
- open any connection to compiler processes.

`rlsindex.rpc` defines only the records and their dictionary form, not a transport. The data must already be on disk, or be passed in as `Analysis` objects.