import logging
import os
from dotenv import load_dotenv

load_dotenv()

DB_PATH = os.getenv('GENIUS_DB_PATH') or os.path.join(
    os.path.dirname(os.path.abspath(__file__)), 'genius.db'
)
SRS_STRATEGY = os.getenv('SRS_STRATEGY', 'sm2')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=LOG_LEVEL
)
