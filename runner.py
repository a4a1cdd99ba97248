import logging
import os
import sys
from app import create_app
from app.utils.scheduler import shutdown_scheduler

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)

def main():
    """Run the grade-book API."""
    port = int(os.environ.get('PORT', 5000))
    try:
        flask_app = create_app()
        logger.info(f"Starting Flask application on port {port}...")
        flask_app.run(host='0.0.0.0', port=port, debug=False, use_reloader=False)
    except KeyboardInterrupt:
        logger.info("Stopping...")
        sys.exit(0)
    finally:
        shutdown_scheduler()

if __name__ == '__main__':
    main()
