"""
Command-line interface for the application.

This module provides the main entry point for the CLI. The API key is read
from ``AEMET_API_KEY`` (environment or ``.env``).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError as PydanticValidationError

from aemet_weather import __version__
from aemet_weather.aemet import AemetClient
from aemet_weather.config import get_settings
from aemet_weather.datasources.aemet.alerts import count_by_level
from aemet_weather.errors import AemetError


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="aemet-weather",
        description="Forecasts, stations and climate data from the AEMET OpenData API",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    forecast_parser = subparsers.add_parser("forecast", help="3-day forecast for a municipality")
    forecast_parser.add_argument("code", help="5-digit INE municipality code (e.g. 28079)")

    stations_parser = subparsers.add_parser("stations", help="List or search weather stations")
    stations_parser.add_argument(
        "--query",
        type=str,
        default=None,
        help="Filter by station or province name",
    )

    climate_parser = subparsers.add_parser("climate", help="Daily climate values or summary")
    climate_parser.add_argument("start", help="Start date (YYYY-MM-DD)")
    climate_parser.add_argument("end", help="End date (YYYY-MM-DD)")
    climate_parser.add_argument(
        "--province",
        type=str,
        default=None,
        help="Summarize every station of this province",
    )

    coords_parser = subparsers.add_parser("coords", help="Hourly forecast nearest to a point")
    coords_parser.add_argument("lat", type=float, help="Latitude (decimal degrees)")
    coords_parser.add_argument("lon", type=float, help="Longitude (decimal degrees)")

    alerts_parser = subparsers.add_parser("alerts", help="Current weather alerts")
    alerts_parser.add_argument(
        "--area",
        type=str,
        default="esp",
        help="Alert area code (default: esp, all Spain)",
    )

    return parser


def _client() -> AemetClient:
    return AemetClient.from_settings(get_settings())


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Base URL: {settings.base_url}")
    print(f"API key configured: {'yes' if settings.api_key else 'no'}")
    print(f"Max attempts: {settings.max_attempts}")
    return 0


def cmd_forecast(args: argparse.Namespace) -> int:
    """Handle the 'forecast' command."""
    result = _client().get_simple_forecast(args.code)
    print(f"{result.name} ({result.province})")
    days = (("Today", result.today), ("Tomorrow", result.tomorrow), ("Next", result.next2))
    for label, day in days:
        print(
            f"  {label:<9} {day.date}  {day.description:<30} "
            f"{day.temp_min:.0f}°C / {day.temp_max:.0f}°C"
        )
    return 0


def cmd_stations(args: argparse.Namespace) -> int:
    """Handle the 'stations' command."""
    client = _client()
    found = (
        client.search_weather_stations(args.query) if args.query else client.get_weather_stations()
    )
    for station in found:
        pos = station.geoposition
        where = f"{pos.latitude:.4f}, {pos.longitude:.4f}" if pos else "-"
        print(f"{station.station_id:<8} {station.name:<40} {station.province:<24} {where}")
    print(f"{len(found)} stations")
    return 0


def cmd_climate(args: argparse.Namespace) -> int:
    """Handle the 'climate' command."""
    client = _client()
    if args.province:
        summary = client.get_climate_summary_by_province(args.start, args.end, args.province)
        print(f"{summary.province}: {summary.station_count} stations, {summary.period.days} days")
        print(
            f"  Temperature  max {summary.temperature.max:.1f}  min {summary.temperature.min:.1f}"
            f"  mean {summary.temperature.mean:.1f}"
        )
        print(
            f"  Precipitation  total {summary.precipitation.total:.1f} mm"
            f"  rainy days {summary.precipitation.rainy_days}"
        )
        print(
            f"  Wind  mean {summary.wind.mean_speed:.1f} m/s  gust {summary.wind.max_gust:.1f} m/s"
            f"  direction {summary.wind.predominant_direction:.0f}°"
        )
        return 0

    values = client.get_climate_values(args.start, args.end)
    for obs in values.values:
        print(json.dumps(obs.model_dump(mode="json", exclude_none=True), ensure_ascii=False))
    return 0


def cmd_coords(args: argparse.Namespace) -> int:
    """Handle the 'coords' command."""
    result = _client().get_weather_by_coordinates(args.lat, args.lon)
    w = result.weather
    print(f"{result.name} ({result.municipality_code}), {result.distance_km:.2f} km away")
    print(f"  {w.time:%Y-%m-%d %H}h  {w.sky_state.description}")
    print(f"  Temperature {w.temperature}°C (feels like {w.feels_like}°C)")
    print(f"  Precipitation {w.precipitation} mm ({w.precipitation_probability}%)")
    print(f"  Wind {w.wind.speed} km/h {w.wind.direction}")
    return 0


def cmd_alerts(args: argparse.Namespace) -> int:
    """Handle the 'alerts' command."""
    collection = _client().get_alerts_geojson(args.area)
    print(f"{len(collection['features'])} alerts")
    for level, count in sorted(count_by_level(collection).items()):
        print(f"  {level}: {count}")
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    try:
        settings = get_settings()
    except PydanticValidationError as exc:
        print(f"Error: invalid configuration\n{exc}", file=sys.stderr)
        return 1
    logging.basicConfig(
        level=logging.DEBUG if args.debug or settings.debug else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "forecast": cmd_forecast,
        "stations": cmd_stations,
        "climate": cmd_climate,
        "coords": cmd_coords,
        "alerts": cmd_alerts,
    }

    handler = commands.get(args.command)
    if not handler:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except AemetError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
