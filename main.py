import argparse
import logging

from FreeFly.errors import VideoStall
from FreeFly.free_fly_control import FreeFlyController


def main():
    parser = argparse.ArgumentParser(description="Free Fly autonomous obstacle avoidance")
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Only Video feedback no Drone connection , debug purposes",
    )
    parser.add_argument(
        "--takeoff",
        action="store_true",
        help="Take off on entering Free Fly if the drone is grounded",
    )
    parser.add_argument(
        "--no-video",
        action="store_true",
        help="Do not open the preview window",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    controller = FreeFlyController(debug=args.debug, show_video=not args.no_video, takeoff=args.takeoff)
    try:
        controller.run()
    except VideoStall as e:
        print(f"Free Fly aborted: {e}")
        raise SystemExit(1)
    except KeyboardInterrupt:
        print("Free Fly stopped")


if __name__ == "__main__":
    main()
