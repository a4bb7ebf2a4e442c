"""RoleCall: Plex now-playing data enriched with cast and crew filmography."""

__version__ = "1.0.0"
