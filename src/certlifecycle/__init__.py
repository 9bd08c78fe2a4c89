"""Certificate lifecycle automation for Docker Compose services.

Obtains Let's Encrypt certificates through certbot, installs them into a
service's runtime directory, schedules daily renewal checks and deploys
renewed material through a per-service deploy hook.
"""

__version__ = "1.0.0"
