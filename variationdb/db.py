import os
from urllib.parse import quote_plus

import sqlalchemy


class VariationDB:
    def __init__(self, host=None, user=None, password=None, db=None, port=3306):
        self.host = host
        self.user = user
        self.password = password
        self.db = db
        self.port = port
        self.url = None

    def get_url(self):
        if self.url is None:
            if os.getenv('VARIATION_DB_CONNECTION'):
                self.url = os.getenv('VARIATION_DB_CONNECTION')
            else:
                self.url = 'mysql+pymysql://{username}:{password}@{host}:{port}/{db}'.format(
                    username=quote_plus(self.user),
                    password=quote_plus(self.password),
                    host=self.host,
                    port=self.port,
                    db=self.db
                )
        return self.url

    def get_engine(self):
        return sqlalchemy.create_engine(self.get_url(), pool_pre_ping=True)
