#!/usr/bin/env python3
"""
Main entry point for running the EduRate API
"""

from edurate.main import create_app
import os

if __name__ == '__main__':
    # Set environment
    os.environ.setdefault('FLASK_ENV', 'development')
    
    # Create and run app
    app = create_app()
    
    print("Starting EduRate API...")
    print("Access the API at: http://localhost:5001/api")
    print("\nPress CTRL+C to stop the server")
    
    app.run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', '5001')),
        debug=app.config.get('DEBUG', False)
    )
