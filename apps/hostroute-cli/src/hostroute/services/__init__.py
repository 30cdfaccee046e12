"""System, NGINX, certbot and state services used by the commands."""
