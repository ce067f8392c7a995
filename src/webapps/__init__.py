"""Sample web applications served in the Docker and AWS labs."""
