# embsvc

`embsvc` holds the interfaces and small building blocks for the services a
network-connected embedded device usually offers. Each service is an abstract
base class that a platform backend implements. Where an interface carries real
logic (parsing subnet masks, phase checks on HTTP connections, routing and
sessions, streamed firmware updates), that logic is included.

The package has no dependencies outside the standard library.

## Blocking and asyncio forms

Most services exist in a blocking form and an asyncio form (`Ping` and
`AsyncPing`, `Ota` and `AsyncOta`, and so on). `embsvc.executor` provides the
pieces that bridge the two:

- `Blocker` runs an awaitable to completion; `AsyncioBlocker` does so on a
  private event loop and can be used as a context manager to close it.
- `Unblocker` turns a blocking call into an awaitable; `ThreadUnblocker` uses
  `asyncio.to_thread`.
- `Blocking(blocker, api)`, `TrivialUnblocking(api)` and
  `Unblocking(unblocker, api)` are plain dataclasses pairing an API with its
  driver.

Ready-made adapters built on them:

| Adapter | Wraps | Gives |
| --- | --- | --- |
| `embsvc.io.BlockingIo` | `AsyncRead`/`AsyncWrite` + blocker | `Read`/`Write` |
| `embsvc.io.UnblockingIo` | `Read`/`Write` | `AsyncRead`/`AsyncWrite` |
| `embsvc.ping.BlockingPing` | `AsyncPing` + blocker | `Ping` |
| `embsvc.mqtt_client.BlockingClient` | async client, publish and connection + blocker | `Client`, `Publish`, `Connection` |
| `embsvc.http_client.BlockingConnection` | `AsyncConnection` + blocker | `Connection` |
| `embsvc.http_client.TrivialUnblockingConnection` | `Connection` | `AsyncConnection` |
| `embsvc.http_server.BlockingConnection` | `AsyncConnection` + blocker | `Connection` |
| `embsvc.http_server.TrivialUnblockingConnection` | `Connection` | `AsyncConnection` |
| `embsvc.ota.BlockingOta` | `AsyncOta` + blocker | `Ota` (updates as `BlockingOtaUpdate`) |

## Modules

| Module | What it provides |
| --- | --- |
| `embsvc.executor` | blockers, unblockers and the wrapper dataclasses above |
| `embsvc.io` | `Read`, `Write`, `AsyncRead`, `AsyncWrite`, `BlockingIo`, `UnblockingIo` |
| `embsvc.eth` | the `Eth` interface: `start`, `stop`, `is_started`, `is_up`; as a context manager it starts on entry and stops on exit |
| `embsvc.ipv4` | `Mask`, `Subnet`, `ClientSettings`, `DHCPClientSettings`, `ClientConfiguration`, `RouterConfiguration`, `Configuration`, `IpInfo`, `Interface` |
| `embsvc.ping` | `Configuration`, `Info`, `Reply`, `Summary`, `Ping`, `AsyncPing`, `BlockingPing` |
| `embsvc.http` | `Method`, `ConnectionStateError`, the `Headers`, `Status` and `Query` bases, status ranges (`INFO`, `OK`, `REDIRECT`, `CLIENT_ERROR`, `SERVER_ERROR`) and header-pair helpers such as `content_type`, `content_len`, `connection_close`, `upgrade_websocket` |
| `embsvc.http_client` | `Client`, `Request` and `Response` over a `Connection`, checking that the connection is in the right phase; async counterparts |
| `embsvc.http_server` | `Request` and `Response` over a server `Connection`, `HandlerError`, `Handler`, `FnHandler`, `Middleware`, `CompositeHandler`; async counterparts |
| `embsvc.httpd` | `Body`, `Request`, `Response`, `SessionState`, routing with `MiddlewareRegistry`, `app_middleware`, and cookie sessions with `Sessions` and `sessions_middleware` |
| `embsvc.event_bus` | `Spin`, `Postbox`, `EventBus`, `PostboxProvider`, and async `Sender`, `Receiver` (iterable with `async for`), `AsyncEventBus`, `AsyncPostboxProvider` |
| `embsvc.mqtt_client` | `QoS`, `EventType`, `Event`, `Complete`, `InitialChunkData`, `SubsequentChunkData`, `Message`, `MessageImpl`, and the client, publish, enqueue and connection interfaces; a `Connection` is iterable and stops when `next()` returns None |
| `embsvc.ota` | `Slot`, `SlotState`, `FirmwareInfo`, `UpdateProgress`, `LoadResult`, `FirmwareInfoLoader`, `Ota`, `OtaUpdate`, `AsyncOta`, `AsyncOtaUpdate`, `BlockingOta`, `BlockingOtaUpdate` |

Errors are raised as exceptions: invalid settings raise `ValueError`, using a
connection in the wrong phase raises `embsvc.http.ConnectionStateError`.

## Examples

Parsing network settings:

```python
from embsvc.ipv4 import Mask, Subnet

subnet = Subnet.parse("192.168.71.1/24")
print(subnet)                               # 192.168.71.1/24
print(subnet.mask.to_ipv4())                # 255.255.255.0
print(Mask.from_ipv4("255.255.0.0"))        # 16
```

Building HTTP header pairs:

```python
from embsvc import http

headers = [http.content_type("text/html"), http.content_len(42)]
# [("Content-Type", "text/html"), ("Content-Length", "42")]
```

Routing with `embsvc.httpd`:

```python
from embsvc.httpd import MiddlewareRegistry, Response, app_middleware

registry = MiddlewareRegistry()
registry.at("/").get(lambda request: Response.from_value("Hello"))
registry.at("/").middleware(app_middleware({"name": "device"}))
handlers = registry.apply_middleware()   # each handler wrapped in every middleware
```

`Sessions(max_sessions, get_random)` keeps session data keyed by a
`SESSIONID` cookie. `get_random` must return 16 bytes; the new session id is
their hex form. Sessions expire after 20 minutes idle, and creating a session
beyond the limit answers with status 429. Session events are logged through the
standard `logging` module under the `embsvc.httpd` logger.

Streaming a firmware image:

```python
update = ota.initiate_update()
update.update(image_file_reader, lambda copied, total: print(copied))
```

`OtaUpdate.update` copies in 64-byte chunks, reports progress after each one,
completes the update at the end and aborts it if copying fails.

## What the package does not do

It contains interfaces and adapters, not platform backends. It does not open
sockets, send ICMP packets, speak HTTP or MQTT on the wire, drive an Ethernet
controller or write firmware to flash; those come from the backend that
implements the interfaces. It has no HTTP server loop of its own: `httpd`
produces wrapped handlers, and dispatching requests to them is left to the
caller. There are no Wi-Fi, key-value storage, system time, timer or WebSocket
interfaces, and no command-line tool.

## Installing

```
pip install .
```

To install with the test dependencies and run the tests:

```
pip install ".[test]"
pytest
```