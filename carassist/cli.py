#!/usr/bin/env python3
"""
CarAssist command line.

Usage:
  # Load demo users and cars
  carassist seed
  carassist seed --csv my_garage.csv

  # Nearby mechanics around a coordinate or a place name
  carassist mechanics --lat 12.9716 --lng 77.5946
  carassist mechanics --lat 12.9716 --lng 77.5946 --radius 1500
  carassist mechanics --location "Indiranagar, Bengaluru"

  # Expiry reminders for a user
  carassist expiry --email test@test.com

  # Run the API
  carassist serve --port 8000
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from carassist.config.settings import DEFAULT_SEARCH_RADIUS, LOG_LEVEL


def configure_logging(level: str = LOG_LEVEL) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def run_seed(args):
    from carassist.seed import main as seed_main

    seed_main(Path(args.csv) if args.csv else None)


def run_mechanics(args):
    from carassist.services.mechanics import GeocodingError, LocationResolver, MechanicFinder, OverpassError

    if args.location:
        try:
            coords = LocationResolver().resolve(args.location)
        except GeocodingError as e:
            print(f"Geocoder error: {e}")
            return 1
        if coords is None:
            print(f"Unable to locate {args.location!r}")
            return 1
        lat, lng = coords
    elif args.lat is not None and args.lng is not None:
        lat, lng = args.lat, args.lng
    else:
        print("Provide --lat and --lng, or --location")
        return 1

    try:
        mechanics = MechanicFinder().find_nearby(lat, lng, args.radius)
    except ValueError as e:
        print(e)
        return 1
    except OverpassError as e:
        print(f"{e.message}: {e.details}")
        return 1
    print(f"\nMechanics within {args.radius / 1000:.1f} km of ({lat:.5f}, {lng:.5f})")
    print("-" * 60)
    if not mechanics:
        print("None found. Try a larger --radius.")
    for m in mechanics:
        print(f"  {m.distance_meters / 1000:5.2f} km  {m.name}")
        if m.address:
            print(f"            {m.address}")
        if m.phone:
            print(f"            tel: {m.phone}")
    return 0


def run_expiry(args):
    from sqlmodel import Session

    from carassist import storage
    from carassist.main import engine
    from carassist.services.expiry import collect_expiry_notifications

    with Session(engine) as session:
        user = storage.get_user_by_email(session, args.email)
        if user is None:
            print(f"No user with email {args.email}")
            return 1
        notifications = collect_expiry_notifications(session, user.id, datetime.now(timezone.utc))

    print(f"\n{'='*60}")
    print(f"EXPIRY REMINDERS FOR {user.full_name} <{user.email}>")
    print(f"{'='*60}")
    if not notifications:
        print("\nAll documents are valid for the next 30 days.")
    for n in notifications:
        print(f"  [{n.status.value:>8}] {n.title} {n.message} (on {n.expiry_date.isoformat()})")
    return 0


def run_serve(args):
    import uvicorn

    uvicorn.run("carassist.main:app", host=args.host, port=args.port, reload=args.reload)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Vehicle documents, reminders and nearby mechanics")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="loguru level (default from LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sp = subparsers.add_parser("seed", help="Load demo users and cars from CSV")
    sp.add_argument("--csv", help="CSV path (default: data/reference/demo_garage.csv)")
    sp.set_defaults(func=run_seed)

    mp = subparsers.add_parser("mechanics", help="Find car repair shops nearby")
    mp.add_argument("--lat", type=float, help="Latitude")
    mp.add_argument("--lng", type=float, help="Longitude")
    mp.add_argument("--location", help='Place name or "lat, lng"')
    mp.add_argument("--radius", type=int, default=DEFAULT_SEARCH_RADIUS, help="Radius in meters")
    mp.set_defaults(func=run_mechanics)

    ep = subparsers.add_parser("expiry", help="Show expiry reminders for a user")
    ep.add_argument("--email", required=True, help="User email")
    ep.set_defaults(func=run_expiry)

    vp = subparsers.add_parser("serve", help="Run the HTTP API")
    vp.add_argument("--host", default="127.0.0.1")
    vp.add_argument("--port", type=int, default=8000)
    vp.add_argument("--reload", action="store_true")
    vp.set_defaults(func=run_serve)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    return args.func(args) or 0


if __name__ == "__main__":
    sys.exit(main())
