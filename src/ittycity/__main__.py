from __future__ import annotations

import argparse
import logging

from ittycity.app_config import DEFAULT_RELAY_HOST, RunConfig, default_relay_port
from ittycity.net import run_relay
from ittycity.state import load_state


def main(argv: list[str] | None = None) -> None:
    default_port = default_relay_port()
    parser = argparse.ArgumentParser(prog="ittycity", description="Itty City walking simulator")
    parser.add_argument(
        "--smoke",
        action="store_true",
        help="Run offscreen for a few seconds of scripted walking and exit (for quick verification).",
    )
    parser.add_argument(
        "--map",
        dest="map_path",
        default=None,
        help="Model to walk around (.glb/.gltf/.bam/.egg). Defaults to the last map used, then the graybox scene.",
    )
    parser.add_argument(
        "--first-person",
        action="store_true",
        help="Use the first-person camera instead of the third-person orbit.",
    )
    parser.add_argument(
        "--remote-host",
        default=DEFAULT_RELAY_HOST,
        help="Remote-control relay host to connect to.",
    )
    parser.add_argument(
        "--remote-port",
        type=int,
        default=default_port,
        help="Remote-control relay port.",
    )
    parser.add_argument(
        "--no-remote",
        action="store_true",
        help="Do not connect to a remote-control relay.",
    )
    parser.add_argument(
        "--relay",
        action="store_true",
        help="Run the remote-control relay server instead of the game.",
    )
    parser.add_argument(
        "--host",
        default=DEFAULT_RELAY_HOST,
        help="Relay bind host (relay mode).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=default_port,
        help="Relay bind port (relay mode).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Debug logging.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.relay:
        run_relay(host=str(args.host), port=int(args.port))
        return

    from ittycity.game import run

    st = load_state()
    map_path = args.map_path
    if map_path is None and not args.smoke:
        map_path = st.last_map
    first_person = bool(args.first_person) or bool(st.first_person)

    run(
        RunConfig(
            smoke=bool(args.smoke),
            map_path=map_path,
            first_person=first_person,
            remote_host=None if args.no_remote else str(args.remote_host),
            remote_port=int(args.remote_port),
        )
    )


if __name__ == "__main__":
    main()
