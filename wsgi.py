import os

from courseware import create_app

app = create_app(os.getenv('FLASK_CONFIG', 'default'))
