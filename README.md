# minialt

`minialt` is a small S3-compatible object storage server for local development
and testing. Point an S3 client at it with path-style addressing to create
buckets and to put, get, copy, list and delete objects. Object contents are
kept as files on disk; bucket and object records are kept in a SQLite
database.

## Installation

```
pip install .
```

## Running

```
minialt
```

This starts two Flask servers, both listening on all interfaces:

- the S3 API on port 9000
- a web interface on port 9001

To start only the S3 API:

```
minialt --no-web
```

(`-no-web` is accepted as well.)

Where things are kept when started this way:

- the SQLite database `mini-alt.sqlite` is created in the directory of the
  program that was started;
- object files are written below `~/Library/Application Support/mini-alt/data`,
  one directory per bucket. This path is used on every operating system.

Every request is logged to standard output as one line, for example:

```
[API-SERVER] 127.0.0.1 - [2024/01/02 15:04:05] "GET /my-bucket?prefix=a/" 200 1.5ms
```

## Supported S3 operations

| Request                                        | Operation     |
|------------------------------------------------|---------------|
| `GET /`                                        | ListBuckets   |
| `PUT /<bucket>`                                | CreateBucket  |
| `PUT /<bucket>/<key>`                          | PutObject     |
| `PUT /<bucket>/<key>` with `x-amz-copy-source` | CopyObject    |
| `GET /<bucket>`                                | ListObjectsV2 |
| `GET /<bucket>/<key>`                          | GetObject     |
| `HEAD /<bucket>/<key>`                         | HeadObject    |
| `DELETE /<bucket>`                             | DeleteBucket  |
| `DELETE /<bucket>/<key>`                       | DeleteObject  |

Details worth knowing:

- **PutObject** creates the bucket if it does not exist yet. Upload headers
  such as `Content-Type`, `Cache-Control`, `Content-Disposition`,
  `Content-Encoding`, `Content-Language`, `Content-MD5`, `Expires` and
  `x-amz-acl` are stored as metadata of the object.
- **CopyObject** reads `x-amz-copy-source` as `source-bucket/source-key` and
  answers with a `CopyObjectResult` document.
- **CreateBucket** answers `409 BucketAlreadyExists` when the name is taken.
- **DeleteObject** answers `204` whether or not the object existed.
- **DeleteBucket** removes the bucket directory with everything in it.
- **HeadObject** answers with `Last-Modified` and `Content-Length`, or
  `404 NoSuchKey`.
- **ListObjectsV2** accepts the `max-keys` (default 1000), `start-after`,
  `prefix` and `delimiter` query parameters; keys below a delimiter are rolled
  up into `CommonPrefixes`.

Errors come back as XML `<Error>` documents carrying `Code`, `Message`,
`BucketName`, `RequestId` and `HostId`.

## Web interface

The web server on port 9001 offers:

- `GET /api/buckets` – asks the S3 API at `http://localhost:9000` for its
  buckets and answers with a JSON list of objects with `Name` and
  `CreationDate`; if the API cannot be reached it answers `400` with
  `{"error": ...}`.
- `/`, `/assets/...` and `/vite.svg` – files of a built front end, read from a
  `dist` directory. Any other path outside `/api/` is answered with the
  front end's `index.html`; unknown paths under `/api/` get a JSON `404`.

## Using it from Python

The servers are ordinary Flask applications and can be embedded:

```python
from minialt.app import create_api_app
from minialt.disk import DiskStorage
from minialt.sqlite_store import SQLiteStore

store = SQLiteStore("minialt.sqlite")
disk = DiskStorage("/tmp/minialt")
disk.ensure_directories()

app = create_api_app(store, disk)
app.run(port=9000)
```

`minialt.store.InMemoryStore` implements the same `Store` interface as
`SQLiteStore` and keeps all records in memory, which suits tests.
`minialt.app.create_web_app(dist_dir, api_url)` builds the web interface for a
front end directory and an API address of your choice.

`minialt.handlers.build_list_result` applies the ListObjectsV2 selection rules
to a list of objects without a request, and `minialt.web.parse_bucket_list`
reads a ListBuckets XML document into dicts.

## What it does not do

- The package does not include a built web front end. `minialt` looks for it
  in `minialt/frontend/dist`; without it the pages answer `500` (for the
  index) or `404` (for assets), while `/api/buckets` still works.
- Requests are not authenticated; signatures and credentials are ignored.
- There are no multipart uploads, object versioning, ACL enforcement or
  encryption.
- The command has no options for ports, addresses or data locations; use the
  Python functions above to choose them.

## Running the tests

```
pip install ".[test]"
pytest
```