import os
import logging
from flask import Flask, jsonify, send_from_directory, current_app
from flask_cors import CORS

from config import get_config
from englishapp.api import all_blueprints
from englishapp.db import init_db
from englishapp.db_config import get_database_config
from englishapp.errors import register_error_handlers

logger = logging.getLogger(__name__)

app = Flask(__name__)

config_class = get_config()
app.config.from_object(config_class)
config_class.init_app(app)
app.json.sort_keys = False

CORS(app, origins=app.config['CORS_ORIGINS'], allow_headers=app.config['CORS_HEADERS'],
     methods=app.config['CORS_METHODS'], supports_credentials=True)

register_error_handlers(app)

# Blueprints
for blueprint in all_blueprints():
    app.register_blueprint(blueprint)


############################
# Static serving
############################

@app.get('/')
def index():
    return 'English Learning App API is running'


@app.get('/health')
def health():
    return jsonify({'ok': True, 'database': get_database_config()['type']})


@app.get('/uploads/<path:filename>')
def uploaded_file(filename):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)


if __name__ == '__main__':
    init_db()
    port = int(os.environ.get('PORT', 5000))
    logger.info("Starting server on port %s", port)
    app.run(debug=app.config['DEBUG'], host='0.0.0.0', port=port)
