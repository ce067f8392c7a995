"""AWS steps for the EC2, S3 and ECR/ECS labs."""
