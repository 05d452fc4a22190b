from shared import load_service_config

SERVICE_NAME = "taskboard"

settings = load_service_config(SERVICE_NAME)
