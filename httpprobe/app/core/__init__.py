SERVICE_NAME = "httpprobe"
