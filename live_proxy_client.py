#!/usr/bin/env python3

import requests
import json
import argparse
import sys
import time
from urllib.parse import quote


class ProxyClientError(Exception):
    def __init__(self, status_code, message):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class LiveProxyClient:
    def __init__(self, base_url="http://localhost:8085", token=None, timeout=30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        if token:
            self.session.headers["X-API-Token"] = token

    def _get(self, path, params=None):
        response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        if not response.ok:
            raise ProxyClientError(response.status_code, response.text.strip())
        return response

    def get_health(self):
        """Get health status"""
        return self._get("/health").json()

    def get_stats(self):
        """Get request counters"""
        return self._get("/stats").json()

    def playlist_url(self, channel_ref, name="stream.m3u8"):
        return f"{self.base_url}/{quote(channel_ref, safe='@')}/{name}"

    def get_playlist(self, channel_ref, name="stream.m3u8", debug=False):
        """Fetch the rewritten master playlist (or its debug dump) for a channel"""
        params = {"debug": "1"} if debug else None
        response = self.session.get(self.playlist_url(channel_ref, name), params=params, timeout=self.timeout)
        if not response.ok:
            raise ProxyClientError(response.status_code, response.text.strip())
        return response.text

    def print_stats(self):
        """Print formatted statistics"""
        stats = self.get_stats()

        print("=" * 60)
        print("LIVE HLS PROXY - STATISTICS")
        print("=" * 60)
        print(f"Uptime: {stats['uptime_seconds']} seconds")
        print(f"Active Requests: {stats['active_requests']}")
        print(f"Total Requests: {stats['total_requests']}")
        print(f"  Master: {stats['master_requests']}")
        print(f"  Variant: {stats['variant_requests']}")
        print(f"  Segment: {stats['segment_requests']}")
        print(f"Failed Requests: {stats['failed_requests']}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="live-hls-proxy Client")
    parser.add_argument("--base-url", default="http://localhost:8085",
                        help="Base URL of the proxy server")
    parser.add_argument("--token", help="API token for management endpoints")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("health", help="Check health")

    subparsers.add_parser("stats", help="Show statistics")

    playlist_parser = subparsers.add_parser("playlist", help="Fetch a channel's master playlist")
    playlist_parser.add_argument("channel_ref", help="@handle, channel id or video id")
    playlist_parser.add_argument("--name", default="stream.m3u8", help="Playlist file name")
    playlist_parser.add_argument("--debug", action="store_true",
                                 help="Print the diagnostic dump instead of the playlist")

    monitor_parser = subparsers.add_parser("monitor", help="Monitor in real-time")
    monitor_parser.add_argument("--interval", type=float, default=5.0)

    args = parser.parse_args(argv)

    client = LiveProxyClient(args.base_url, token=args.token)

    try:
        if args.command == "health":
            print(json.dumps(client.get_health(), indent=2))

        elif args.command == "stats":
            client.print_stats()

        elif args.command == "playlist":
            print(client.get_playlist(args.channel_ref, args.name, args.debug))

        elif args.command == "monitor":
            print("Monitoring live-hls-proxy (Press Ctrl+C to stop)...")
            try:
                while True:
                    client.print_stats()
                    time.sleep(args.interval)
                    print("\n" + "="*60 + "\n")
            except KeyboardInterrupt:
                print("\nMonitoring stopped.")

        else:
            parser.print_help()

    except ProxyClientError as e:
        print(f"Error: {e}")
        return 1
    except requests.RequestException as e:
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
