# saveany

`saveany` is a library that turns web post URLs into lists of downloadable
resources and saves those resources to storage. Tasks run on a pool of worker
threads and can be cancelled. It contains:

- **Items and parsers** (`saveany.items`, `saveany.parsers`). A `Parser` turns
  a URL into an `Item` that holds `Resource`s. `TwitterParser` reads tweets
  through an fxtwitter-compatible API. `KemonoParser` reads Kemono post pages.
  `ParserRegistry` selects the first parser that accepts a URL.
- **Storage** (`saveany.storage.base`, `saveany.storage.local`). The abstract
  `Storage` interface, along with `LocalStorage`, which writes into a directory.
- **Tasks** (`saveany.tasks.parsed`, `saveany.tasks.progress`). `ParsedTask`
  downloads every resource of an item in parallel, retries failures and
  reports progress.
- **A task queue and worker pool** (`saveany.queue`, `saveany.worker`).
  `TaskQueue` and `TaskRunner` run tasks and can call shell hooks around them
  (`saveany.hooks`).
- **Routing rules** (`saveany.rules`) that select a storage and a directory
  for each file.
- **Enumerations** (`saveany.enums`) with parsers that ignore case.

Python 3.11 or newer is required. The runtime dependencies are `requests` and
`semver`. Install `saveany[test]` to run the tests with pytest.

## Task queue

```python
from saveany.queue import Task, TaskQueue

queue = TaskQueue()
queue.add(Task("first", {"url": "a"}))
queue.add(Task("second", {"url": "b"}))

queue.cancel_task("first")
print(queue.length())         # 2: the count includes cancelled entries
print(queue.active_length())  # 1

task = queue.get()            # cancelled tasks are skipped
print(task.id)                # "second"
queue.done(task.id)
queue.close()
```

- `get()` blocks until a task is available. After `close()`, it raises
  `QueueError` once the queue is empty.
- `add()` raises `QueueError` in two cases: the id is already queued, or the
  queue is closed. Adding a task that was already cancelled raises
  `TaskCancelledError`.
- `Task(task_id, data, cancel_event)` may be given a `threading.Event`. The
  task counts as cancelled once that event is set.

## Running tasks

`TaskRunner(workers, hooks, queue)` takes objects that have:

- a `task_id` attribute,
- a `task_type()` method,
- an `execute(cancel_event)` method.

```python
from saveany.worker import ExecHooks, TaskRunner

runner = TaskRunner(workers=3, hooks=ExecHooks(task_success="echo done"))
runner.start()
runner.add_task(my_task)
runner.cancel_task(my_task.task_id)  # sets the event passed to execute()
runner.stop()                        # closes the queue and waits for the workers
```

Hooks are shell commands. They run through `sh -c`, or `cmd.exe /C` on
Windows, before each task and after it succeeds, fails or is cancelled. Empty
hook strings are skipped. To run a single command yourself, call
`saveany.hooks.run_hook(command)`. It raises `subprocess.CalledProcessError`
on a non-zero exit.

## Parsing a URL

```python
from saveany.parsers.kemono import extract_download_info
from saveany.parsers.registry import ParserRegistry
from saveany.parsers.twitter import get_tweet_id

print(get_tweet_id("https://x.com/someone/status/12345"))  # "12345"
info = extract_download_info("kemono.cr/fanbox/user/1/post/2")
print(info.service_name, info.user_id, info.post_id)       # fanbox 1 2

registry = ParserRegistry(parser_configs={"twitter": {"api_domain": "api.fxtwitter.com"}})
item = registry.parse("https://x.com/someone/status/12345")
```

- `ParserRegistry()` holds `TwitterParser` and `KemonoParser` by default.
  `add()` appends more parsers.
- Configurable parsers are configured once, on first use, from the entry of
  `parser_configs` under their `name()`. `TwitterParser` reads the
  `api_domain` and `proxy` keys.
- `parse()` raises `NoParserFoundError` when no parser accepts the URL.
  `can_handle()` returns the matching parser, or `None`.
- `KemonoParser` handles post pages only. Profile pages are recognised but
  raise `RuntimeError`.
- `check_plugin_version(version)` checks that a plugin's declared version lies
  in the supported range, currently exactly 1.0.0. It raises `ValueError`
  otherwise.

`Item.to_dict()` / `Item.from_dict()` and `Resource.to_dict()` /
`Resource.from_dict()` convert items to and from plain mappings.
`Resource.id()` gives a stable MD5 digest of the resource.

## Storage

```python
from saveany.storage.base import StorageConfig
from saveany.storage.local import LocalStorage

storage = LocalStorage(StorageConfig(name="disk", type="local", base_path="downloads"))
path = storage.save(b"hello", storage.join_storage_path("notes/a.txt"))
print(path)  # downloads/notes/a.txt; a second save gives downloads/notes/a_1.txt
```

- `save(reader, storage_path, content_length)` accepts bytes, a file-like
  object or an iterable of chunks. It returns the path it actually wrote.
- `Storage.unique_path()` chooses the first name of the form `name_N.ext`
  that is not taken, so existing files are never overwritten.
- `use_storage(storage)` is a context manager that makes a storage current.
  `current_storage()` returns it.

## Downloading a parsed item

```python
from saveany.tasks.parsed import MessageProgress, ParsedTask

progress = MessageProgress(lambda text, cancel_id: print(text))
task = ParsedTask("job-1", storage, "/post", item, progress=progress, workers=3, retry=3)
task.execute()
```

- Resources are cached in `temp_dir` and then saved. Pass `stream=True` to
  stream them straight into the storage instead.
- The first error is raised after all workers stop. A cancelled run raises
  `TaskCancelledError`.
- `saveany.tasks.progress` provides `ProgressWriter`, which counts bytes
  written to a target. It also provides `should_update_file_progress()`,
  which decides when a file download is worth reporting.

## Rules

```python
from saveany.rules import FileNameRegexRule, IsAlbumRule

rule = FileNameRegexRule("disk", "/videos", r"\.mp4$")
print(rule.match("clip.mp4"))          # True
print(IsAlbumRule("disk", "/albums", True).match(False))  # False
```

An invalid pattern raises `ValueError`. `rule_types()` lists every
`RuleType`.

## Enumerations

`saveany.enums` defines `StorageType`, `TaskType`, `FilenameStrategy` and
`ContextKey`. Each one has a parser that ignores case, for example
`parse_storage_type("LOCAL")`. The parsers raise `ValueError` for unknown
names.

## What is not included

- The only storage backend is the local file system. `StorageType` lists other
  kinds of storage, but the package has no backend for them.
- There is no Telegraph support.
- Nothing builds storages from configuration.
- There is no persistent store of users, directories, rules or watched chats.
- The package is a library only. It installs no command and runs no bot or
  server.