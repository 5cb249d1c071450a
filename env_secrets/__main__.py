from env_secrets.cli.main import main

main()
