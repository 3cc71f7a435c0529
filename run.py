"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py --debug run

Seed the default spending categories once:

    flask --app run.py seed-categories

"""

from projekta import create_app

# WSGI application object for Flask to run. `flask run` looks for this `app` variable.
app = create_app()

if __name__ == "__main__":
    # For direct `python run.py` usage (dev only); use `flask run` or a WSGI server otherwise.
    app.run(debug=True)
