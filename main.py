#!/usr/bin/env python3
"""
Rural Health Triage – entrypoint.

Run: python main.py serve                  # start the webhook/API server
      python main.py parse "I have a fever near Springfield"
      python main.py parse --facilities "..."   # also look up nearby facilities
"""

import argparse
import json
import logging
import os

from facilities_osm import format_facility_list, lookup_nearby_facilities
from models import LookupStatus
from report_parser import parse_report
from triage_rules import matched_critical_symptoms


def _parse(text: str, with_facilities: bool) -> None:
    record = parse_report(text)
    critical = matched_critical_symptoms(record.symptoms)
    print(json.dumps(
        {
            "symptoms": record.sorted_symptoms(),
            "location": record.location,
            "critical": bool(critical),
            "criticalSymptoms": critical,
        },
        indent=2,
    ))

    if with_facilities and record.location:
        lookup = lookup_nearby_facilities(record.location)
        if lookup.status is LookupStatus.FAILED:
            print(f"\nFacility search failed: {lookup.error}")
        else:
            print("\n" + format_facility_list(lookup.facilities))


def main():
    parser = argparse.ArgumentParser(description="Rural Health Triage")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")))

    parse = sub.add_parser("parse", help="Parse report text and print the triage record")
    parse.add_argument("text", nargs="+", help="Report text")
    parse.add_argument("--facilities", action="store_true", help="Look up facilities near the location")

    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))

    if args.command == "serve":
        import uvicorn
        uvicorn.run("server:app", host=args.host, port=args.port)
        return

    _parse(" ".join(args.text), args.facilities)


if __name__ == "__main__":
    main()
