# FastAPI application entry point that initialises
# the app, its error handlers and the API routes.


from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from app.core.config import settings
from app.core.errors import AuthError
from app.routes.auth import router as auth_router
import logging

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, description="API for BankID authentication", version="1.0", docs_url="/api-docs")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)


@app.exception_handler(AuthError)
def auth_error_handler(request: Request, exc: AuthError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies and missing parameters are client errors like any other bad input
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/login", response_class=HTMLResponse)
def login_page():
    # HTML page: personal number form, QR code, status polling and countdown
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>BankID Login</title>
        <style>
            body {{
                font-family: Arial, sans-serif;
                display: flex;
                flex-direction: column;
                align-items: center;
                justify-content: center;
                min-height: 100vh;
                margin: 0;
                background: #f5f5f5;
            }}
            .container {{
                background: white;
                padding: 2rem;
                border-radius: 10px;
                box-shadow: 0 2px 10px rgba(0,0,0,0.1);
                text-align: center;
                max-width: 360px;
            }}
            h1 {{
                color: #333;
                margin-bottom: 1rem;
            }}
            #qr-code img {{
                width: 240px;
                height: 240px;
            }}
            #status {{
                margin-top: 1rem;
                padding: 0.5rem;
                border-radius: 5px;
                font-weight: bold;
            }}
            .pending {{
                color: #666;
                background: #f0f0f0;
            }}
            .userSign {{
                color: #004085;
                background: #cce5ff;
            }}
            .complete {{
                color: #28a745;
                background: #d4edda;
            }}
            .failed {{
                color: #dc3545;
                background: #f8d7da;
            }}
            .hidden {{
                display: none;
            }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1>Log in with BankID</h1>
            <form id="start-form">
                <label for="personal-number">Personal number (YYYYMMDDNNNN)</label><br/>
                <input id="personal-number" inputmode="numeric" maxlength="{settings.SUBJECT_ID_LENGTH}" required />
                <button type="submit">Start</button>
            </form>
            <div id="flow" class="hidden">
                <div id="qr-code"><img alt="QR Code" /></div>
                <div id="countdown"></div>
                <button id="cancel">Cancel</button>
                <button id="restart" class="hidden">Restart</button>
            </div>
            <div id="status" class="pending"></div>
        </div>
        <script>
            const pollInterval = {settings.POLL_INTERVAL_MS};
            const displayBudget = {settings.DISPLAY_BUDGET_SECONDS};
            const nearExpiry = {settings.NEAR_EXPIRY_SECONDS};
            let flow = null;

            function updateStatus(status, message) {{
                const statusEl = document.getElementById('status');
                statusEl.className = status;
                statusEl.textContent = message;
            }}

            function stopFlow() {{
                if (!flow) return;
                clearInterval(flow.pollTimer);
                clearInterval(flow.countdownTimer);
                flow = null;
            }}

            async function pollStatus(current) {{
                try {{
                    const response = await fetch(`/auth/status?orderRef=${{current.orderRef}}`);
                    if (!response.ok) throw new Error(`HTTP ${{response.status}}`);
                    const data = await response.json();
                    if (flow !== current) return;

                    if (data.status === 'userSign') {{
                        updateStatus('userSign', `Open the BankID app and sign. (${{data.hintCode}})`);
                    }} else if (data.status === 'complete') {{
                        clearInterval(current.pollTimer);
                        const tokenResponse = await fetch('/auth/token', {{
                            method: 'POST',
                            headers: {{ 'Content-Type': 'application/json' }},
                            body: JSON.stringify({{ orderRef: current.orderRef }})
                        }});
                        updateStatus('complete', tokenResponse.ok ? '✓ Logged in!' : '✗ Failed to fetch access token');
                        stopFlow();
                    }} else if (data.status === 'failed') {{
                        updateStatus('failed', '✗ Login failed. Please try again.');
                        stopFlow();
                    }}
                }} catch (error) {{
                    console.error('Poll error:', error);
                    updateStatus('failed', '✗ Error checking status');
                    stopFlow();
                }}
            }}

            function tick(current) {{
                current.timeLeft -= 1;
                document.getElementById('countdown').textContent = `${{current.timeLeft}} s left`;
                document.getElementById('restart').classList.toggle('hidden', current.timeLeft >= nearExpiry);
                if (current.timeLeft <= 0) clearInterval(current.countdownTimer);
            }}

            async function startFlow(personalNumber) {{
                stopFlow();
                const response = await fetch('/auth/initiate', {{
                    method: 'POST',
                    headers: {{ 'Content-Type': 'application/json' }},
                    body: JSON.stringify({{ subjectId: personalNumber }})
                }});
                if (!response.ok) {{
                    updateStatus('failed', '✗ Invalid personal number');
                    return;
                }}
                const data = await response.json();
                const current = {{ orderRef: data.orderRef, personalNumber, timeLeft: displayBudget }};
                flow = current;

                document.getElementById('flow').classList.remove('hidden');
                document.querySelector('#qr-code img').src = data.qrCodeUrl;
                updateStatus('pending', 'Waiting for signing...');

                current.pollTimer = setInterval(() => pollStatus(current), pollInterval);
                current.countdownTimer = setInterval(() => tick(current), 1000);
                pollStatus(current); // Initial poll
            }}

            document.getElementById('start-form').addEventListener('submit', (event) => {{
                event.preventDefault();
                startFlow(document.getElementById('personal-number').value);
            }});

            document.getElementById('cancel').addEventListener('click', async () => {{
                if (!flow) return;
                const orderRef = flow.orderRef;
                stopFlow();
                await fetch('/auth/cancel', {{
                    method: 'POST',
                    headers: {{ 'Content-Type': 'application/json' }},
                    body: JSON.stringify({{ orderRef }})
                }});
                document.getElementById('flow').classList.add('hidden');
            }});

            document.getElementById('restart').addEventListener('click', () => {{
                if (flow) startFlow(flow.personalNumber);
            }});
        </script>
    </body>
    </html>
    """

    return HTMLResponse(content=html_content)


@app.get("/callback", response_class=HTMLResponse)
def callback_page():
    # Landing page after the BankID app redirects back; polls the order named by autostarttoken
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>BankID Login</title>
        <style>
            body {{
                font-family: Arial, sans-serif;
                display: flex;
                align-items: center;
                justify-content: center;
                min-height: 100vh;
                margin: 0;
                background: #f5f5f5;
            }}
            .container {{
                background: white;
                padding: 2rem;
                border-radius: 10px;
                box-shadow: 0 2px 10px rgba(0,0,0,0.1);
                text-align: center;
                max-width: 360px;
            }}
            .complete {{
                color: #28a745;
                font-weight: bold;
            }}
            .failed {{
                color: #dc3545;
                font-weight: bold;
            }}
        </style>
    </head>
    <body>
        <div class="container">
            <p id="status">Waiting for signing...</p>
        </div>
        <script>
            const pollInterval = {settings.POLL_INTERVAL_MS};
            const orderRef = new URLSearchParams(window.location.search).get('autostarttoken');
            const statusEl = document.getElementById('status');
            let pollTimer = null;

            function show(status, message) {{
                statusEl.className = status;
                statusEl.textContent = message;
            }}

            async function pollStatus() {{
                try {{
                    const response = await fetch(`/auth/status?orderRef=${{encodeURIComponent(orderRef)}}`);
                    if (!response.ok) throw new Error(`HTTP ${{response.status}}`);
                    const data = await response.json();

                    if (data.status === 'pending') {{
                        show('pending', 'Waiting for signing...');
                    }} else if (data.status === 'userSign') {{
                        show('userSign', `Open the BankID app and sign. (${{data.hintCode}})`);
                    }} else if (data.status === 'complete') {{
                        show('complete', '✓ Logged in!');
                        clearInterval(pollTimer);
                    }} else {{
                        show('failed', '✗ Login failed. Please try again.');
                        clearInterval(pollTimer);
                    }}
                }} catch (error) {{
                    console.error('Poll error:', error);
                    show('failed', '✗ Login failed. Please try again.');
                    clearInterval(pollTimer);
                }}
            }}

            if (orderRef) {{
                pollTimer = setInterval(pollStatus, pollInterval);
                pollStatus(); // Initial poll
            }} else {{
                show('failed', '✗ Missing order reference.');
            }}
        </script>
    </body>
    </html>
    """

    return HTMLResponse(content=html_content)
