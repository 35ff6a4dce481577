from fastapi.security import OAuth2PasswordBearer

# Tokens come from the external identity provider; this only reads the header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)
