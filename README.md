# webproxy

A small concurrent web proxy for POSIX systems. It forwards plain HTTP
requests to their origin server and tunnels HTTPS traffic through the
`CONNECT` method. Each completed request is added as one line to `proxy.log`
in the working directory.

## Running

```
webproxy [-t|--thread] [-p|--process] <port>
```

- `-p`, `--process`: serve each connection in a forked child process (the default)
- `-t`, `--thread`: serve each connection in its own thread
- `-h`, `--help`: print usage and exit with status 1

The proxy listens on every local IPv4 address and prints a line such as
`Proxy listening on port 8080 [THREAD mode]...` when it starts. A missing
port or an unknown option prints the usage text and exits with status 1. A
port that does not read as a positive number prints `Invalid port number: ...`
and exits with status 1.

Example:

```
webproxy --thread 8080
```

Then configure an HTTP client to use `localhost:8080` as its proxy.

## Behaviour

- The request line is read and the client's headers are read and discarded.
- An HTTP request is sent upstream as an `HTTP/1.0` request that carries only
  the `Host` and `Connection: close` headers. The upstream response goes back
  to the client unchanged.
- A `CONNECT host:port` request gets the reply
  `HTTP/1.1 200 Connection Established`. After that, bytes are relayed in both
  directions until one side closes or the tunnel has been idle for 60 seconds.
- If the upstream host cannot be resolved or reached, the client receives a
  `502 Bad Gateway` HTML page.
- The port in a request target defaults to 80 when none is given.

## Log format

HTTP requests (timestamp in local time, then client address, URI, and
response size in bytes):

```
Mon 01 Jan 2024 12:00:00 UTC: 127.0.0.1 http://example.com/ 1256
```

CONNECT tunnels:

```
Mon 01 Jan 2024 12:00:00 UTC: CONNECT from 127.0.0.1 to example.com:443, Data Sent: 517 / Received: 4096
```

In process mode, log writes are serialised with an advisory file lock. In
thread mode they are serialised with a lock shared by the threads.

## Library use

- `webproxy.uri.parse_uri(uri)` returns a `ParsedUri` with `hostname`, `port`
  and `path`.
- `webproxy.logformat` provides `format_timestamp`, `format_http_log`,
  `format_connect_log`, and `client_error`, which builds a complete HTTP
  error response as bytes.
- `webproxy.netio` provides `RioReader`, a buffered socket reader with `read`,
  `readnb` and `readline`. It also provides `readn`, `writen`, and
  `open_clientfd` / `open_listenfd` for opening sockets.
- `webproxy.server` provides `Mode`, `LogWriter`, the handlers
  `handle_request`, `forward_http` and `handle_connect`, as well as `relay`,
  `run_proxy`, `parse_args` and `main`.

## What it does not do

The proxy does not cache responses and does not keep connections alive. It
serves one request per client connection and does not pass the client's
request headers upstream. It works only over IPv4. There is no configuration
file, and the log file location is fixed.

## Tests

The tests use pytest. It is available through the `test` extra.