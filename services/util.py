# services/util.py

import os

def get_data_path():
    path = get_env('NEXTFORWARD_DATA_PATH')
    return path.strip() if path else 'data'

def get_log_path():
    path = get_env('NEXTFORWARD_LOG_PATH')
    return path.strip() if path else 'logs'

def get_env(env: str):
    return os.environ.get(env)
